"""Card data exceptions."""

class CardDataError(Exception):
    """Base exception for card data handling."""
    pass


class ValidationError(CardDataError):
    """Invalid card data format."""
    pass
