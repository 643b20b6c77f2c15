"""
Schema validation tests for classroadmap.

Tests the Pydantic models to ensure they validate correctly.
"""

import pytest
from datetime import datetime

from classroadmap.schemas import (
    ApiResponse,
    EntityKind,
    EntityRef,
    FileRecord,
    LessonDraft,
    LessonResource,
    RoadmapSection,
    SectionDraft,
    SUCCESS_CODE,
)


class TestRoadmapSchemas:
    """Test section and lesson models."""

    def test_section_defaults(self):
        section = RoadmapSection(id=1, title="Giới thiệu")
        assert section.order == 0
        assert section.description == ""
        assert section.children == []

    def test_section_children_are_independent(self):
        first = RoadmapSection(id=1, title="One")
        second = RoadmapSection(id=2, title="Two")
        first.children.append(LessonResource(id=1, title="x", parent_section_id=1))
        assert second.children == []

    def test_negative_order_rejected(self):
        with pytest.raises(ValueError):
            RoadmapSection(id=1, title="Bad", order=-1)
        with pytest.raises(ValueError):
            LessonResource(id=1, title="Bad", order=-1, parent_section_id=1)

    def test_lesson_requires_parent(self):
        with pytest.raises(ValueError):
            LessonResource(id=1, title="Orphan")

    def test_ids_keep_their_type(self):
        assert RoadmapSection(id=7, title="x").id == 7
        assert RoadmapSection(id="A", title="x").id == "A"

    def test_file_record(self):
        record = FileRecord(
            file_name="slides.pdf",
            file_url="uploads/slides.pdf",
            file_type="application/pdf",
            file_size=2048,
            uploaded_at=datetime(2024, 3, 1, 9, 30),
        )
        lesson = LessonResource(id=1, title="Slides", parent_section_id=1, file_ref=record)
        assert lesson.file_ref.file_name == "slides.pdf"

    def test_file_record_size_bounds(self):
        with pytest.raises(ValueError):
            FileRecord(file_name="x", file_url="x", file_size=-1)


class TestEntityRef:
    """Test entity references."""

    def test_section_ref(self):
        ref = EntityRef.section("A")
        assert ref.kind == EntityKind.SECTION
        assert ref.is_section

    def test_lesson_ref_with_parent(self):
        ref = EntityRef.lesson("a1", "A")
        assert ref.kind == EntityKind.LESSON
        assert ref.section_id == "A"
        assert not ref.is_section

    def test_section_ref_cannot_have_parent(self):
        with pytest.raises(ValueError):
            EntityRef(kind=EntityKind.SECTION, id="A", section_id="B")

    def test_refs_are_hashable_and_comparable(self):
        assert EntityRef.lesson("a1", "A") == EntityRef.lesson("a1", "A")
        assert EntityRef.lesson("a1", "A") != EntityRef.lesson("a1", "B")
        assert len({EntityRef.section("A"), EntityRef.section("A")}) == 1


class TestDrafts:
    """Test creation drafts."""

    def test_title_is_stripped(self):
        assert SectionDraft(title="  Bài mới  ").title == "Bài mới"

    def test_blank_title_rejected(self):
        with pytest.raises(ValueError):
            SectionDraft(title="   ")
        with pytest.raises(ValueError):
            LessonDraft(title="")

    def test_lesson_draft_optional_file(self):
        draft = LessonDraft(title="Đọc hiểu")
        assert draft.file_ref is None
        assert draft.upload_path is None


class TestApiResponse:
    """Test the REST envelope."""

    def test_success(self):
        response = ApiResponse.model_validate(
            {"message": "OK", "code": SUCCESS_CODE, "result": [], "httpStatus": "OK"}
        )
        assert response.ok
        assert response.http_status == "OK"

    def test_failure_code(self):
        response = ApiResponse.model_validate({"message": "Không tìm thấy", "code": 404})
        assert not response.ok
        assert response.result is None

    def test_code_required(self):
        with pytest.raises(ValueError):
            ApiResponse.model_validate({"message": "missing code"})
