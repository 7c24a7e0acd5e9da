# analytics error kinds
# computation errors propagate to the caller; data availability is modelled as view state


class AnalyticsError(Exception):
    """base class for errors raised by the analytics core"""


class InvalidPeriodError(AnalyticsError, ValueError):
    """unrecognized chart period value"""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Unrecognized chart period: {value!r}")


class UnresolvedIdentityError(AnalyticsError, LookupError):
    """a client or doctor id that the record source cannot resolve"""

    def __init__(self, entity: str, identifier: str):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} not found: {identifier}")


class InsufficientDataError(UnresolvedIdentityError):
    """raised by the aggregator when the client record itself is missing"""

    def __init__(self, client_id: str):
        super().__init__("client", client_id)
