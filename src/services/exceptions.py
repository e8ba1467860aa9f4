"""Shared exceptions for service layer operations."""
from core.paginate import PageNumberOutOfBoundsError, PageNumberParseError


class DomainError(Exception):
    """Base class for every error raised by the domain services."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ValidationError(DomainError):
    """Raised when an input fails a validation rule."""

    pass


class NotFoundError(DomainError):
    """Raised when a resource does not exist or is not owned by the caller."""

    pass


class ConflictError(DomainError):
    """Raised when an operation would violate a uniqueness constraint."""

    pass


class AuthenticationError(DomainError):
    """Raised when an identity cannot be established."""

    pass


class StoreError(DomainError):
    """Raised when the persistence layer fails for a reason other than a known conflict."""

    def __init__(self, context: str, cause: Exception | None = None) -> None:
        self.context = context
        self.cause = cause
        message = f"{context}: {cause}" if cause is not None else context
        super().__init__(message)


# =============================================================================
# Bookmarks
# =============================================================================


class URLRequiredError(ValidationError):
    """Raised when a bookmark has no URL."""

    def __init__(self) -> None:
        super().__init__("URL is required")


class URLInvalidError(ValidationError):
    """Raised when a bookmark URL is not a parseable absolute URL."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Invalid URL: {url!r}")


class TitleRequiredError(ValidationError):
    """Raised when a bookmark has no title."""

    def __init__(self) -> None:
        super().__init__("Title is required")


class UIDRequiredError(ValidationError):
    """Raised when an identifier is missing."""

    def __init__(self) -> None:
        super().__init__("UID is required")


class UIDInvalidError(ValidationError):
    """Raised when an identifier is not a valid UID."""

    def __init__(self, uid: str) -> None:
        self.uid = uid
        super().__init__(f"Invalid UID: {uid!r}")


class UserUUIDRequiredError(ValidationError):
    """Raised when the owning user is missing."""

    def __init__(self) -> None:
        super().__init__("User UUID is required")


class TagNameRequiredError(ValidationError):
    """Raised when a tag name is empty."""

    def __init__(self) -> None:
        super().__init__("Tag name is required")


class TagCurrentNameContainsWhitespaceError(ValidationError):
    """Raised when the tag to rename or delete contains whitespace."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Tag name must not contain whitespace: {name!r}")


class TagNewNameContainsWhitespaceError(ValidationError):
    """Raised when the new name of a tag contains whitespace."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"New tag name must not contain whitespace: {name!r}")


class TagNewNameEqualsCurrentNameError(ValidationError):
    """Raised when renaming a tag to its own name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"New tag name is the same as the current name: {name!r}")


class VisibilityInvalidError(ValidationError):
    """Raised when a visibility value is not part of the accepted set."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Invalid visibility: {value!r}")


class OnConflictStrategyInvalidError(ValidationError):
    """Raised when an import conflict strategy is unknown."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Invalid conflict strategy: {value!r}")


class ImportDocumentInvalidError(ValidationError):
    """Raised when an imported document cannot be parsed."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid import document: {reason}")


class BookmarkNotFoundError(NotFoundError):
    """Raised when a bookmark does not exist for the user."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Bookmark not found: {identifier}")


class OwnerNotFoundError(NotFoundError):
    """Raised when a public owner cannot be resolved."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Owner not found: {identifier}")


class URLAlreadyRegisteredError(ConflictError):
    """Raised when a bookmark with the same URL already exists for the user."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"A bookmark with URL '{url}' already exists")


# =============================================================================
# Users and sessions
# =============================================================================


class EmailRequiredError(ValidationError):
    """Raised when a user has no email."""

    def __init__(self) -> None:
        super().__init__("Email is required")


class NickNameRequiredError(ValidationError):
    """Raised when a user has no nickname."""

    def __init__(self) -> None:
        super().__init__("Nickname is required")


class NickNameInvalidError(ValidationError):
    """Raised when a nickname is not a URL-safe handle."""

    def __init__(self, nick_name: str) -> None:
        self.nick_name = nick_name
        super().__init__(
            f"Invalid nickname {nick_name!r}: only letters, digits, '-' and '_' are allowed",
        )


class DisplayNameRequiredError(ValidationError):
    """Raised when a user has no display name."""

    def __init__(self) -> None:
        super().__init__("Display name is required")


class PasswordRequiredError(ValidationError):
    """Raised when a password is empty."""

    def __init__(self) -> None:
        super().__init__("Password is required")


class PasswordConfirmationMismatchError(ValidationError):
    """Raised when a password and its confirmation differ."""

    def __init__(self) -> None:
        super().__init__("Password confirmation does not match")


class UserNotFoundError(NotFoundError):
    """Raised when a user does not exist."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"User not found: {identifier}")


class EmailAlreadyRegisteredError(ConflictError):
    """Raised when an email is already used by another account."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"Email already registered: {email}")


class NickNameAlreadyRegisteredError(ConflictError):
    """Raised when a nickname is already used by another account."""

    def __init__(self, nick_name: str) -> None:
        self.nick_name = nick_name
        super().__init__(f"Nickname already registered: {nick_name}")


class InvalidCredentialsError(AuthenticationError):
    """Raised when an email and password pair does not match an account."""

    def __init__(self) -> None:
        super().__init__("invalid email or password")


class SessionNotFoundError(AuthenticationError):
    """Raised when a remember token is unknown or expired."""

    def __init__(self) -> None:
        super().__init__("Session not found")


# =============================================================================
# Feeds
# =============================================================================


class CategoryNameRequiredError(ValidationError):
    """Raised when a feed category has no name."""

    def __init__(self) -> None:
        super().__init__("Category name is required")


class CategorySlugRequiredError(ValidationError):
    """Raised when a category name does not produce a slug."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Category name {name!r} cannot be turned into a slug")


class CategoryUUIDInvalidError(ValidationError):
    """Raised when a category identifier is not a UUID."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Invalid category UUID: {value!r}")


class CategoryNotFoundError(NotFoundError):
    """Raised when a feed category does not exist for the user."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Category not found: {identifier}")


class CategoryAlreadyRegisteredError(ConflictError):
    """Raised when a category name or slug is already used by the user."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"A category named '{name}' already exists")


class FeedURLInvalidError(ValidationError):
    """Raised when a feed URL is empty or unparseable."""

    def __init__(self, url: str, reason: str = "invalid URL") -> None:
        self.url = url
        super().__init__(f"Invalid feed URL {url!r}: {reason}")


class FeedNotFoundError(NotFoundError):
    """Raised when a feed does not exist."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Feed not found: {identifier}")


class FeedFetchError(DomainError):
    """Raised when a feed cannot be retrieved or parsed."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Could not fetch feed {url}: {reason}")


class SubscriptionUUIDInvalidError(ValidationError):
    """Raised when a subscription identifier is not a UUID."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Invalid subscription UUID: {value!r}")


class SubscriptionNotFoundError(NotFoundError):
    """Raised when a subscription does not exist for the user."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Subscription not found: {identifier}")


class SubscriptionAlreadyRegisteredError(ConflictError):
    """Raised when the user is already subscribed to a feed."""

    def __init__(self, feed_url: str) -> None:
        self.feed_url = feed_url
        super().__init__(f"Already subscribed to {feed_url}")


class EntryNotFoundError(NotFoundError):
    """Raised when a feed entry is not visible to the user."""

    def __init__(self, uid: str) -> None:
        self.uid = uid
        super().__init__(f"Entry not found: {uid}")


# =============================================================================
# Public feed
# =============================================================================


class FeedRenderError(DomainError):
    """Raised when an Atom feed entry cannot be rendered."""

    def __init__(self, context: str, cause: Exception) -> None:
        self.context = context
        self.cause = cause
        super().__init__(f"{context}: {cause}")


__all__ = [
    "AuthenticationError",
    "BookmarkNotFoundError",
    "CategoryAlreadyRegisteredError",
    "CategoryNameRequiredError",
    "CategoryNotFoundError",
    "CategorySlugRequiredError",
    "CategoryUUIDInvalidError",
    "ConflictError",
    "DisplayNameRequiredError",
    "DomainError",
    "EmailAlreadyRegisteredError",
    "EmailRequiredError",
    "EntryNotFoundError",
    "FeedFetchError",
    "FeedNotFoundError",
    "FeedRenderError",
    "FeedURLInvalidError",
    "ImportDocumentInvalidError",
    "InvalidCredentialsError",
    "NickNameAlreadyRegisteredError",
    "NickNameInvalidError",
    "NickNameRequiredError",
    "NotFoundError",
    "OnConflictStrategyInvalidError",
    "OwnerNotFoundError",
    "PageNumberOutOfBoundsError",
    "PageNumberParseError",
    "PasswordConfirmationMismatchError",
    "PasswordRequiredError",
    "SessionNotFoundError",
    "StoreError",
    "SubscriptionAlreadyRegisteredError",
    "SubscriptionNotFoundError",
    "SubscriptionUUIDInvalidError",
    "TagCurrentNameContainsWhitespaceError",
    "TagNameRequiredError",
    "TagNewNameContainsWhitespaceError",
    "TagNewNameEqualsCurrentNameError",
    "TitleRequiredError",
    "UIDInvalidError",
    "UIDRequiredError",
    "URLAlreadyRegisteredError",
    "URLInvalidError",
    "UserNotFoundError",
    "UserUUIDRequiredError",
    "ValidationError",
    "VisibilityInvalidError",
]
