class DeliveryError(RuntimeError):
    """Raised when an outbound email or SMS could not be handed to any provider."""
