import logging

from obcflow.core.config import settings


def _category_enabled(category: str | None) -> bool:
    if not settings.FLOW_LOGS_ENABLED:
        return False
    if category == "shipment":
        return settings.FLOW_LOGS_SHIPMENT_ENABLED
    if category == "quote":
        return settings.FLOW_LOGS_QUOTE_ENABLED
    return True


def flow_info(
    logger: logging.Logger,
    msg: str,
    *args,
    category: str | None = None,
    **kwargs,
) -> None:
    if _category_enabled(category):
        logger.info(msg, *args, **kwargs)
