from obcflow.models.customer_master import CustomerMaster  # noqa: F401
from obcflow.models.partner_master import PartnerMaster  # noqa: F401
from obcflow.models.courier import Courier  # noqa: F401
from obcflow.models.quote import Quote  # noqa: F401
from obcflow.models.shipment import Shipment, ShipmentStatusHistory  # noqa: F401
from obcflow.models.task import ShipmentTask  # noqa: F401
from obcflow.models.invoice import Invoice  # noqa: F401
from obcflow.models.audit_log import AuditLog  # noqa: F401
from obcflow.models.number_range import SysNumberRange  # noqa: F401
