"""Unit tests for PathMetadataExtractor."""

from __future__ import annotations

import pytest

from src.services.ingestion.metadata_extractor import PathMetadataExtractor


class TestPathMetadataExtractor:
    @pytest.fixture()
    def extractor(self) -> PathMetadataExtractor:
        return PathMetadataExtractor()

    def test_product_from_directory(self, extractor: PathMetadataExtractor) -> None:
        assert extractor.extract_product("grid/api/Grid.md") == "grid"

    def test_product_defaults_to_core(self, extractor: PathMetadataExtractor) -> None:
        assert extractor.extract_product("misc/notes.md") == "core"

    def test_file_name_is_not_matched(self, extractor: PathMetadataExtractor) -> None:
        # "gantt.md" is a file, not a directory segment.
        assert extractor.extract_product("misc/gantt.md") == "core"

    def test_product_priority_follows_known_list(self, extractor: PathMetadataExtractor) -> None:
        assert extractor.extract_product("scheduler/grid/x.md") == "grid"

    def test_matching_is_case_insensitive(self, extractor: PathMetadataExtractor) -> None:
        assert extractor.extract_product("docs/Gantt/Guides/intro.md") == "gantt"
        assert extractor.extract_type("docs/Gantt/Guides/intro.md") == "guide"

    def test_framework(self, extractor: PathMetadataExtractor) -> None:
        assert extractor.extract_framework("grid/guides/react/intro.md") == "react"
        assert extractor.extract_framework("grid/guides/intro.md") == "vanilla"

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("grid/api/Grid.md", "api"),
            ("grid/examples/basic.md", "example"),
            ("grid/concepts/store.md", "concept"),
            ("grid/guide/intro.md", "guide"),
            ("grid/whatsnew/6.0.md", "guide"),
        ],
    )
    def test_type(self, extractor: PathMetadataExtractor, path: str, expected: str) -> None:
        assert extractor.extract_type(path) == expected

    def test_tags_skip_root_segment_by_default(self, extractor: PathMetadataExtractor) -> None:
        assert extractor.extract_tags("docs_6.3.3/grid/guides/intro.md") == ["grid", "guides"]

    def test_tags_with_root_segment(self) -> None:
        extractor = PathMetadataExtractor(include_root_segment=True)
        assert extractor.extract_tags("docs_6.3.3/grid/guides/intro.md") == [
            "docs_6.3.3",
            "grid",
            "guides",
        ]

    def test_tags_are_deduplicated(self) -> None:
        extractor = PathMetadataExtractor(include_root_segment=True)
        assert extractor.extract_tags("grid/api/grid/x.md") == ["grid", "api"]

    def test_backslash_paths(self, extractor: PathMetadataExtractor) -> None:
        assert extractor.extract_product("docs\\gantt\\api\\Gantt.md") == "gantt"

    def test_custom_taxonomy(self) -> None:
        extractor = PathMetadataExtractor(
            taxonomy={"products": ["widgets"], "default_product": "base"}
        )
        assert extractor.extract_product("widgets/a.md") == "widgets"
        assert extractor.extract_product("grid/a.md") == "base"
        # Untouched keys keep their defaults.
        assert extractor.extract_framework("vue/a.md") == "vue"

    def test_extract_returns_all_fields(self, extractor: PathMetadataExtractor) -> None:
        assert extractor.extract("docs/gantt/api/react/Gantt.md") == {
            "tags": ["gantt", "api", "react"],
            "product": "gantt",
            "framework": "react",
            "type": "api",
        }
