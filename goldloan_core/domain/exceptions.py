"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    error = "domain_error"

    def context(self) -> dict:
        """Extra fields surfaced to the caller alongside the message"""
        return {}


class ValidationError(DomainException):
    """Malformed or missing required input"""

    error = "validation_error"

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    def context(self) -> dict:
        return {"field": self.field}


class InvalidTransition(DomainException):
    """Loan action not permitted from the current status"""

    error = "invalid_transition"

    def __init__(self, from_status, attempted):
        super().__init__(f"Cannot move loan from {from_status.value} to {attempted.value}")
        self.from_status = from_status
        self.attempted = attempted

    def context(self) -> dict:
        return {"from": self.from_status.value, "attempted": self.attempted.value}


class InvalidState(DomainException):
    """Collateral or ledger operation violates a custody or lifecycle guard"""

    error = "invalid_state"


class ConcurrentModification(DomainException):
    """Stored loan changed since the caller read it"""

    error = "concurrent_modification"


class NotFound(DomainException):
    """Referenced loan, item or payment does not exist"""

    error = "not_found"

    def __init__(self, kind: str, identifier):
        super().__init__(f"{kind} {identifier} not found")
        self.kind = kind
        self.identifier = identifier

    def context(self) -> dict:
        return {"resource": self.kind}
