"""Exception types raised by the game catalog clients and data layer."""


class GameCatalogError(Exception):
    """Base class for all catalog errors."""


class ConfigurationError(GameCatalogError):
    """A required environment value is missing."""


class AuthFailed(GameCatalogError):
    """The identity provider rejected the client-credentials exchange."""

    def __init__(self, status: int):
        self.status = status
        super().__init__(f"Twitch token request failed: {status}")


class ApiError(GameCatalogError):
    """The catalog API returned a non-success status after the 401 retry."""

    def __init__(self, status: int, body: str | None = None):
        self.status = status
        self.body = body
        super().__init__(f"IGDB API error: {status}")


class RequestFailed(GameCatalogError):
    """The storefront search request returned a non-success status."""

    def __init__(self, status: int):
        self.status = status
        super().__init__(f"Steam search request failed: {status}")


class StoreQueryFailed(GameCatalogError):
    """A relational store read or write failed."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Store query failed: {message}")


class RecommendationFailed(GameCatalogError):
    """The similarity procedure raised an error."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Recommendation failed: {message}")
