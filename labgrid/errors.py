"""Lookup failures the API answers with 404."""


class NotFoundError(KeyError):
    """Unknown room, layout version or reservation."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Not found"
