"""Error taxonomy surfaced by the payment-order bridge.

Collaborator failures keep their kind on the way up. Callers may add context
(operation, identifier) but never translate one kind into another.
"""


class PayBridgeError(Exception):
    """Base class for every failure returned to bridge callers."""

    kind = "error"

    def __init__(self, message: str, operation: str | None = None, identifier: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.identifier = identifier

    def __str__(self) -> str:
        parts = []
        if self.operation:
            parts.append(self.operation)
        if self.identifier:
            parts.append(self.identifier)
        if not parts:
            return self.message
        return f"{' '.join(parts)}: {self.message}"


class UpstreamUnavailable(PayBridgeError):
    """The backend call failed or returned a transport-level error."""

    kind = "upstream_unavailable"


class OrderNotFound(PayBridgeError):
    """The backend reports no such order."""

    kind = "order_not_found"


class LocationUnavailable(PayBridgeError):
    """Country defaulting needed a location and the resolver could not supply one."""

    kind = "location_unavailable"


class GatewayRejected(PayBridgeError):
    """The gateway-specific callback was refused by the backend."""

    kind = "gateway_rejected"


class EncodingError(PayBridgeError):
    """A backend value could not be decoded into the internal model."""

    kind = "encoding_error"
