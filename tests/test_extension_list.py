from __future__ import annotations

import json

import pytest

from conftest import MIRROR, PRIMARY, DictFetcher
from core.errors import ExtensionListError
from core.services.extension_list import (
    parse_extensions_json,
    parse_extensions_list,
    resolve_extension_list,
)
from core.services.source_resolver import SourceResolver


def _resolver(contents: dict[tuple[str, str], object]) -> tuple[SourceResolver, DictFetcher]:
    fetcher = DictFetcher(contents)
    return SourceResolver([PRIMARY, MIRROR], fetcher), fetcher


def test_parse_bare_array() -> None:
    assert parse_extensions_json('["ms-python.python", " esbenp.prettier-vscode ", ""]') == [
        "ms-python.python",
        "esbenp.prettier-vscode",
    ]


def test_parse_recommendations_object() -> None:
    text = json.dumps({"recommendations": ["vue.volar", "dbaeumer.vscode-eslint"]})
    assert parse_extensions_json(text) == ["vue.volar", "dbaeumer.vscode-eslint"]


def test_parse_jsonc_with_comments_and_trailing_commas() -> None:
    text = """
    {
      // Vue tooling
      "recommendations": [
        "vue.volar", /* language server */
        "https://not-a-comment//x.y",
      ],
    }
    """
    assert parse_extensions_json(text) == ["vue.volar", "https://not-a-comment//x.y"]


def test_parse_keeps_commas_inside_strings() -> None:
    assert parse_extensions_json('["a,]", "b, }", "c.d",]') == ["a,]", "b, }", "c.d"]


def test_parse_trailing_comma_before_comment() -> None:
    text = '{"recommendations": ["x.y", // last one\n ], /* end */ }'
    assert parse_extensions_json(text) == ["x.y"]


@pytest.mark.parametrize(
    "text",
    [
        '{"extensions": ["a.b"]}',
        '"a.b"',
        '{"recommendations": "a.b"}',
        '["a.b", 3]',
        "not json at all",
    ],
)
def test_parse_rejects_other_shapes(text: str) -> None:
    with pytest.raises(ValueError):
        parse_extensions_json(text)


def test_parse_line_list() -> None:
    text = "# team extensions\n\n  foo.bar  \n// disabled\n//baz.qux\nvue.volar\r\n"
    assert parse_extensions_list(text) == ["foo.bar", "vue.volar"]


@pytest.mark.asyncio
async def test_prefers_extensions_json() -> None:
    resolver, fetcher = _resolver(
        {
            ("primary", "extensions.json"): '{"recommendations": ["a.a"]}',
            ("primary", "extensions.list"): "b.b",
        }
    )

    assert await resolve_extension_list(resolver) == ["a.a"]
    assert "extensions.list" not in fetcher.paths()


@pytest.mark.asyncio
async def test_missing_json_falls_back_to_line_list() -> None:
    resolver, _ = _resolver({("mirror", "extensions.list"): "# comment\n\nfoo.bar\n"})

    assert await resolve_extension_list(resolver) == ["foo.bar"]


@pytest.mark.asyncio
async def test_malformed_json_falls_back_to_line_list() -> None:
    resolver, fetcher = _resolver(
        {
            ("primary", "extensions.json"): '{"extensions": []}',
            ("primary", "extensions.list"): "# comment\n\nfoo.bar",
        }
    )

    assert await resolve_extension_list(resolver) == ["foo.bar"]
    assert fetcher.paths() == ["extensions.json", "extensions.list"]


@pytest.mark.asyncio
async def test_empty_line_list_fails_with_root_cause() -> None:
    resolver, _ = _resolver({("primary", "extensions.list"): "# only comments\n\n// nothing\n"})

    with pytest.raises(ExtensionListError) as excinfo:
        await resolve_extension_list(resolver)

    message = str(excinfo.value)
    assert "extensions.json unavailable" in message
    assert "contains no extension ids" in message


@pytest.mark.asyncio
async def test_both_artifacts_missing() -> None:
    resolver, _ = _resolver({})

    with pytest.raises(ExtensionListError, match="extensions.list unavailable"):
        await resolve_extension_list(resolver)
