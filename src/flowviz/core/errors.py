class FlowVizError(Exception):
    pass


class FetchError(FlowVizError):
    pass


class RateLimitError(FetchError):
    pass


class InvalidAmountError(FlowVizError, ValueError):
    pass


class InvalidFilterError(FlowVizError, ValueError):
    pass


class UnknownCounterpartyError(FlowVizError):
    pass


class InternalInvariantViolation(FlowVizError):
    pass
