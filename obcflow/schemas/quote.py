from .shipment import TransitionResponse


class QuoteConversionResponse(TransitionResponse):
    quote_id: int
