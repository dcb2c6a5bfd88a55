"""Unit tests for text cleanup utilities."""

from bs4 import BeautifulSoup

from cinefeed.utils.text import (
    absolute_url,
    clean_paragraphs,
    clean_text,
    is_absolute_http_url,
    split_names,
    strip_label,
    text_lines,
)


class TestCleanText:
    def test_collapses_whitespace(self) -> None:
        assert clean_text("  The   Film \n\t 2 ") == "The Film 2"

    def test_none_becomes_empty_string(self) -> None:
        assert clean_text(None) == ""

    def test_removes_control_characters(self) -> None:
        assert clean_text("Film\x00 X\x1f") == "Film X"

    def test_keeps_accented_characters(self) -> None:
        assert clean_text("Lunedì  9 Febbraio") == "Lunedì 9 Febbraio"


class TestCleanParagraphs:
    def test_keeps_paragraph_breaks(self) -> None:
        text = "  First  line\n  continued\n\n\nSecond "
        assert clean_paragraphs(text) == "First line continued\n\nSecond"

    def test_drops_empty_paragraphs(self) -> None:
        assert clean_paragraphs("\n\n  \n\nOnly one\n\n") == "Only one"

    def test_empty_input(self) -> None:
        assert clean_paragraphs(None) == ""
        assert clean_paragraphs("   ") == ""


class TestTextLines:
    def test_returns_text_nodes_in_document_order(self) -> None:
        soup = BeautifulSoup(
            "<div><h1> Title </h1><p>Line <b>one</b></p><p>  </p><span>two</span></div>",
            "html.parser",
        )
        assert text_lines(soup.div) == ["Title", "Line", "one", "two"]

    def test_skips_scripts_styles_and_comments(self) -> None:
        soup = BeautifulSoup(
            "<div><script>var x = 1;</script><style>.a{}</style><!-- hidden -->"
            "<p>Visible</p></div>",
            "html.parser",
        )
        assert text_lines(soup.div) == ["Visible"]


class TestAbsoluteUrl:
    def test_resolves_relative_path(self) -> None:
        assert (
            absolute_url("https://cinemazero.it/programmazione/", "/film/nosferatu/")
            == "https://cinemazero.it/film/nosferatu/"
        )

    def test_keeps_absolute_url(self) -> None:
        assert absolute_url("https://a.it/", "https://b.it/x.jpg") == "https://b.it/x.jpg"

    def test_resolves_protocol_relative_url(self) -> None:
        assert absolute_url("https://a.it/", "//cdn.a.it/p.jpg") == "https://cdn.a.it/p.jpg"

    def test_rejects_non_http_schemes(self) -> None:
        assert absolute_url("https://a.it/", "javascript:void(0)") is None
        assert absolute_url("https://a.it/", "mailto:info@a.it") is None
        assert absolute_url("https://a.it/", "data:image/png;base64,AAAA") is None

    def test_empty_href(self) -> None:
        assert absolute_url("https://a.it/", None) is None
        assert absolute_url("https://a.it/", "   ") is None


class TestIsAbsoluteHttpUrl:
    def test_accepts_http_and_https(self) -> None:
        assert is_absolute_http_url("https://a.it/film/1")
        assert is_absolute_http_url("http://a.it")

    def test_rejects_relative_and_other_schemes(self) -> None:
        assert not is_absolute_http_url("/film/1")
        assert not is_absolute_http_url("ftp://a.it/x")
        assert not is_absolute_http_url("")
        assert not is_absolute_http_url(None)


class TestSplitNames:
    def test_splits_and_cleans(self) -> None:
        assert split_names("Toni Servillo, Anna  Ferzetti , ") == ("Toni Servillo", "Anna Ferzetti")

    def test_empty(self) -> None:
        assert split_names(None) == ()
        assert split_names(" , ") == ()


class TestStripLabel:
    def test_removes_label_case_insensitively(self) -> None:
        assert strip_label("REGIA: Paolo Sorrentino", "regia") == "Paolo Sorrentino"

    def test_label_without_colon(self) -> None:
        assert strip_label("Cast Toni Servillo", "cast") == "Toni Servillo"

    def test_text_without_label_is_only_stripped(self) -> None:
        assert strip_label("  Paolo Sorrentino ", "regia") == "Paolo Sorrentino"
