"""Tests for detail page parsing."""

import pytest

from webbook.models import Book, BookSource
from webbook.parser import BookInfoResolver, SelectorRuleEvaluator


@pytest.fixture
def resolver():
    return BookInfoResolver(SelectorRuleEvaluator())


@pytest.fixture
def book(base_url):
    return Book(book_url=f"{base_url}/book/1")


class TestBookInfo:
    """Test merging detail pages into book records."""

    def test_fields_and_toc_url(self, resolver, source, book, detail_page_html):
        resolver.resolve(book, detail_page_html, source, book.book_url)

        assert book.name == "Dune"
        assert book.author == "Frank Herbert"
        assert book.intro == "A desert planet."
        assert book.toc_url == "https://books.example.com/book/1/toc"
        assert book.toc_html is None

    def test_incremental_merge_keeps_existing_values(self, resolver, source, book):
        book.author = "Frank Herbert"
        book.kind = "Sci-Fi"
        resolver.resolve(book, "<html><body><h1>Dune</h1></body></html>", source, book.book_url)

        assert book.name == "Dune"
        assert book.author == "Frank Herbert"
        assert book.kind == "Sci-Fi"

    def test_page_without_toc_link_is_its_own_toc(self, resolver, source, book):
        body = "<html><body><h1>Dune</h1></body></html>"
        resolver.resolve(book, body, source, book.book_url)

        assert book.toc_url == book.book_url
        assert book.toc_html == body

    def test_relative_links_use_effective_url(self, resolver, source_data, book):
        source_data["ruleBookInfo"]["coverUrl"] = "img.cover@src"
        source = BookSource.model_validate(source_data)
        body = '<img class="cover" src="c.jpg"><a class="toc" href="toc.html">Toc</a>'

        resolver.resolve(book, body, source, "https://m.example.com/b/1/")

        assert book.cover_url == "https://m.example.com/b/1/c.jpg"
        assert book.toc_url == "https://m.example.com/b/1/toc.html"

    def test_init_rule_selects_subdocument(self, resolver, source_data, book):
        source_data["ruleBookInfo"] = {"init": "div.main", "name": "h1@text"}
        source = BookSource.model_validate(source_data)
        body = "<h1>Site header</h1><div class='main'><h1>Dune</h1></div>"

        resolver.resolve(book, body, source, book.book_url)

        assert book.name == "Dune"

    def test_no_rules_leaves_book_unchanged(self, resolver, base_url, book):
        book.name = "Dune"
        resolver.resolve(book, "<h1>Other</h1>", BookSource(book_source_url=base_url), base_url)
        assert book.name == "Dune"
        assert book.toc_url == book.book_url
