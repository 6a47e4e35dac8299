"""Exceptions raised by the data-access layer.

The HTTP layer maps these to status codes: validation errors become 400,
not-found becomes 404. Anything else coming out of the driver is left
untouched and ends up as a 500.
"""


class CardGraphError(Exception):
    """Base class for cardgraph errors."""


class ConfigurationError(CardGraphError):
    """Missing or invalid settings. Fatal at startup."""


class CardNotFoundError(CardGraphError):
    def __init__(self, card_id):
        self.card_id = card_id
        super().__init__(f"Card with ID {card_id} not found")


class ValidationError(CardGraphError, ValueError):
    """Rejected input, raised before any database call."""


class InvalidStateError(ValidationError):
    def __init__(self, state):
        self.state = state
        super().__init__(
            f"Invalid state {state!r}. Must be 'avhuket' or 'ikke_avhuket'"
        )


class InvalidCardIdError(ValidationError):
    def __init__(self, card_id):
        self.card_id = card_id
        super().__init__(f"Invalid card ID {card_id!r}. Must be a positive integer")
