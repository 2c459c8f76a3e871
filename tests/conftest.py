"""Test configuration and fixtures."""

import logfire

from quill.domain.model import Article, User

# Keep spans and logs local during tests
logfire.configure(send_to_logfire=False, console=False)


def make_user(adj: str) -> User:
    """A user named after an adjective: ``user@<adj>.com``."""
    return User(
        email=f"user@{adj}.com",
        username=adj,
        bio=f"{adj} bio",
        image=f"https://{adj}.com/avatar.png",
        password=f"{adj}-hash",
    )


def make_author(adj: str) -> User:
    """Like :func:`make_user`, with the email ``author@<adj>.com``."""
    return make_user(adj).model_copy(update={"email": f"author@{adj}.com"})


def make_article(adj: str, author_email: str | None = None) -> Article:
    """An article titled ``"<adj> title"`` with three tags.

    The slug is ``<adj>-title`` and the author defaults to
    ``author@<adj>.com``.
    """
    return Article.create(
        f"{adj} title",
        f"{adj} description",
        f"{adj} body",
        author_email or f"author@{adj}.com",
        f"{adj} one",
        f"{adj} two",
        f"{adj} three",
    )
