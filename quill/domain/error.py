"""Domain layer errors.

Repositories translate the storage failures they understand into these
kinds. Anything else (connectivity, unclassified constraint violations)
surfaces as raised by the storage driver.
"""


class DomainError(Exception):
    """Base domain error."""

    pass


class ValidationError(DomainError):
    """Domain validation error."""

    pass


class NotFoundError(DomainError):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} not found: {identifier}")


class UserNotFoundError(NotFoundError):
    """Raised when no user matches the given email or username."""

    def __init__(self, identifier: str):
        super().__init__("user", identifier)


class ArticleNotFoundError(NotFoundError):
    """Raised when no article matches the given slug."""

    def __init__(self, identifier: str):
        super().__init__("article", identifier)


class DuplicateError(DomainError):
    """Raised when a write would violate a uniqueness rule."""

    pass


class DuplicateUserError(DuplicateError):
    """Raised when a user's email or username is already taken."""

    def __init__(self, email: str, username: str):
        self.email = email
        self.username = username
        super().__init__(
            f"user has a duplicate username or email address: {username} <{email}>"
        )


class DuplicateArticleError(DuplicateError):
    """Raised when another article already has the same slug."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"article has a duplicate slug: {slug}")


class NoAuthorError(DomainError):
    """Raised when the author of an article or comment can't be found."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"author not found: {email}")
