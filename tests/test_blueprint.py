"""
Unit tests for BlueprintExtractor.
"""

import pytest

from migration.blueprint import BlueprintExtractor, PlanError


class TestShapes:

    @pytest.fixture
    def extractor(self, project_root):
        return BlueprintExtractor(project_root)

    def test_top_level_documents(self, extractor, make_blueprint):
        docs = extractor.extract(make_blueprint(("a.md", "guide"), ("b.md", "adr")))
        assert [d.task.source_path for d in docs] == ["a.md", "b.md"]
        assert docs[0].shape == "documents"

    @pytest.mark.parametrize("text, shape", [
        ("migration_plan:\n  documents:\n    - path: a.md\n", "migration_plan.documents"),
        ("migration_plan:\n  files:\n    - source: a.md\n", "migration_plan.files"),
        ("discovered_documents:\n  - source_path: a.md\n", "discovered_documents"),
        ("files:\n  - path: a.md\n", "files"),
    ])
    def test_recognised_shapes(self, extractor, text, shape):
        docs = extractor.extract(text)
        assert len(docs) == 1
        assert docs[0].task.source_path == "a.md"
        assert docs[0].shape == shape

    def test_accepts_parsed_mapping(self, extractor):
        docs = extractor.extract({"documents": [{"path": "x.md", "type": "guide"}]})
        assert docs[0].task.document_type == "guide"

    def test_unknown_sections_are_ignored(self, extractor):
        text = (
            "analysis_summary:\n  total: 3\n"
            "unknown_section:\n  - path: ignored.md\n"
            "documents:\n  - path: kept.md\n"
        )
        docs = extractor.extract(text)
        assert [d.task.source_path for d in docs] == ["kept.md"]

    def test_malformed_entries_are_skipped(self, extractor):
        text = "documents:\n  - just a string\n  - {type: guide}\n  - path: ok.md\n"
        assert [d.task.source_path for d in extractor.extract(text)] == ["ok.md"]

    def test_duplicates_keep_first(self, extractor):
        text = (
            "documents:\n  - {path: a.md, type: guide}\n"
            "files:\n  - {path: a.md, type: adr}\n"
        )
        docs = extractor.extract(text)
        assert len(docs) == 1
        assert docs[0].task.document_type == "guide"


class TestPlanError:

    @pytest.fixture
    def extractor(self, project_root):
        return BlueprintExtractor(project_root)

    def test_invalid_yaml(self, extractor):
        with pytest.raises(PlanError):
            extractor.extract("documents: [unclosed")

    def test_not_a_mapping(self, extractor):
        with pytest.raises(PlanError):
            extractor.extract("- a.md\n- b.md\n")

    def test_no_recognised_shape(self, extractor):
        with pytest.raises(PlanError):
            extractor.extract("summary:\n  total: 0\n")

    def test_empty_text(self, extractor):
        with pytest.raises(PlanError):
            extractor.extract("")


class TestFilesystemFacts:

    def test_existing_source_to_new_target(self, project_root, write_file):
        write_file("old/setup.md", "# Setup\n")
        doc = BlueprintExtractor(project_root).extract(
            "documents:\n  - {path: old/setup.md, type: guide}\n"
        )[0]
        assert doc.task.target_path == "docs/guides/setup.md"
        assert doc.source_exists
        assert doc.needs_move
        assert not doc.needs_creation
        assert doc.needs_frontmatter

    def test_missing_document_needs_creation(self, project_root):
        doc = BlueprintExtractor(project_root).extract(
            "documents:\n  - {path: docs/guides/new.md, type: guide, has_frontmatter: true}\n"
        )[0]
        assert doc.needs_creation
        assert not doc.needs_move
        assert doc.needs_frontmatter

    def test_existing_target_only(self, project_root, write_file):
        write_file("docs/guides/setup.md", "# Setup\n")
        doc = BlueprintExtractor(project_root).extract(
            "documents:\n  - {path: old/setup.md, target_path: docs/guides/setup.md}\n"
        )[0]
        assert not doc.needs_creation
        assert not doc.needs_move
        assert not doc.source_exists

    def test_frontmatter_flag_respected(self, project_root, write_file):
        write_file("README.md", "---\ntitle: x\n---\n")
        doc = BlueprintExtractor(project_root).extract(
            "documents:\n  - {path: README.md, hasFrontmatter: true}\n"
        )[0]
        assert doc.task.document_type == "readme"
        assert doc.task.target_path == "README.md"
        assert not doc.needs_move
        assert not doc.needs_frontmatter

    def test_title_defaults_to_stem(self, project_root):
        docs = BlueprintExtractor(project_root).extract(
            "documents:\n  - {path: docs/a-guide.md}\n  - {path: b.md, title: Custom}\n"
        )
        assert docs[0].title == "a-guide"
        assert docs[1].title == "Custom"

    def test_backslash_paths_normalised(self, project_root):
        doc = BlueprintExtractor(project_root).extract(
            {"documents": [{"path": "docs\\guides\\x.md", "type": "guide"}]}
        )[0]
        assert doc.task.source_path == "docs/guides/x.md"


class TestProjectBoundary:

    def test_entries_leaving_the_root_are_skipped(self, project_root, write_file):
        outside = project_root.parent / "outside.md"
        outside.write_text("# Outside\n")
        write_file("old/setup.md", "# Setup\n")

        docs = BlueprintExtractor(project_root).extract({"documents": [
            {"path": "../outside.md", "type": "guide"},
            {"path": "docs/../../outside.md", "type": "guide"},
            {"path": str(outside), "type": "guide"},
            {"path": "old/setup.md", "target_path": "../moved.md"},
            {"path": "old/setup.md", "target_path": "/tmp/moved.md"},
            {"path": "old/setup.md", "type": "guide"},
        ]})

        assert [(d.task.source_path, d.task.target_path) for d in docs] == [
            ("old/setup.md", "docs/guides/setup.md"),
        ]
        assert outside.exists()

    def test_dot_segments_inside_the_root_are_kept(self, project_root, write_file):
        write_file("docs/guides/setup.md", "# Setup\n")
        doc = BlueprintExtractor(project_root).extract(
            "documents:\n  - {path: old/../docs/guides/setup.md, type: guide}\n"
        )[0]
        assert doc.task.source_path == "docs/guides/setup.md"
        assert doc.source_exists
        assert not doc.needs_move

    def test_only_escaping_entries_means_empty_plan(self, project_root):
        assert BlueprintExtractor(project_root).extract(
            "documents:\n  - {path: ../a.md}\n"
        ) == []
