"""Unit tests for Article and slug derivation."""

import pydantic
import pytest

from quill.domain.error import ValidationError
from quill.domain.model import Article, AuthoredArticle, Author, User
from quill.domain.value import slugify


class TestSlugify:
    """Tests for slugify."""

    @pytest.mark.parametrize(
        "title,slug",
        [
            ("hospitable title", "hospitable-title"),
            ("Hospitable Title", "hospitable-title"),
            ("  padded   title  ", "padded-title"),
            ("tab\tand\nnewline", "tab-and-newline"),
            ("single", "single"),
        ],
    )
    def test_slugify(self, title, slug):
        assert slugify(title) == slug


class TestArticleCreate:
    """Tests for Article.create."""

    def test_create_derives_slug_and_tags(self):
        article = Article.create(
            "Observant Title",
            "a description",
            "a body",
            "author@observant.com",
            "one",
            "two",
            "one",
        )

        assert article.slug == "observant-title"
        assert article.title == "Observant Title"
        assert article.tag_list == ["one", "two"]
        assert article.created_at is None
        assert article.updated_at is None

    @pytest.mark.parametrize(
        "title,body,author",
        [
            ("", "body", "a@b.com"),
            ("title", "   ", "a@b.com"),
            ("title", "body", ""),
        ],
    )
    def test_create_requires_title_body_and_author(self, title, body, author):
        with pytest.raises(ValidationError):
            Article.create(title, "", body, author)

    def test_blank_tags_are_dropped(self):
        article = Article.create("t", "", "b", "a@b.com", "", "tag")

        assert article.tag_list == ["tag"]

    def test_author_email_is_lowercased(self):
        article = Article.create("a title", "", "a body", "Author@Mixed.com")

        assert article.author_email == "author@mixed.com"


class TestArticleMutation:
    """Tests for Article mutation methods."""

    def test_set_title_changes_slug(self):
        article = Article.create("old title", "", "body", "a@b.com")

        renamed = article.set_title("New Title")

        assert renamed.title == "New Title"
        assert renamed.slug == "new-title"
        assert article.slug == "old-title"

    def test_set_blank_title_fails(self):
        article = Article.create("old title", "", "body", "a@b.com")

        with pytest.raises(ValidationError):
            article.set_title(" ")

    def test_has_tag(self):
        article = Article.create("t", "", "b", "a@b.com", "python")

        assert article.has_tag("python")
        assert not article.has_tag("go")


class TestAuthoredArticle:
    """Tests for the AuthoredArticle projection."""

    def test_author_satisfies_author_protocol(self):
        author = User(email="a@b.com", username="a", bio="bio", image="img")
        article = Article.create("t", "", "b", "a@b.com")

        authored = AuthoredArticle(
            **article.model_dump(), author=author, favorite_count=3
        )

        assert isinstance(authored.author, Author)
        assert authored.author.bio == "bio"
        assert authored.favorite_count == 3

    def test_favorite_count_is_never_negative(self):
        author = User(email="a@b.com", username="a")
        article = Article.create("t", "", "b", "a@b.com")

        with pytest.raises(pydantic.ValidationError):
            AuthoredArticle(**article.model_dump(), author=author, favorite_count=-1)
