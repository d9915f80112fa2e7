from __future__ import annotations

import copy

import pytest

from learnhub.errors import InvariantViolation
from learnhub.services import progress_service
from learnhub.services.progress_service import CompletionFacts, ProgressStatus


def _lesson(lesson_id: str, chapter_count: int) -> dict:
    return {
        "id": lesson_id,
        "name": f"课程 {lesson_id}",
        "chapters": [{"id": f"{lesson_id}-c{index}", "name": f"章节 {index}"} for index in range(1, chapter_count + 1)],
    }


def _facts(actor_id: str, *completed: str) -> CompletionFacts:
    return CompletionFacts(actor_id=actor_id, completed=frozenset(completed))


@pytest.mark.unit
def test_three_of_four_chapters_completed_is_75_percent() -> None:
    lesson = _lesson("l1", 4)

    result = progress_service.annotate(lesson, "u1", _facts("u1", "l1-c1", "l1-c2", "l1-c4"))

    assert result is lesson
    assert lesson["percentage"] == {"type": "percentage", "percent": 75}
    assert [chapter["type"] for chapter in lesson["chapters"]] == ["chapters"] * 4


@pytest.mark.unit
def test_lesson_without_chapters_is_zero_percent() -> None:
    lesson = _lesson("l1", 0)

    progress_service.annotate(lesson, "u1", _facts("u1"))

    assert lesson["percentage"]["percent"] == 0
    assert lesson["chapters"] == []


@pytest.mark.unit
def test_missing_completion_record_counts_as_not_completed() -> None:
    lesson = _lesson("l1", 3)
    facts = CompletionFacts(actor_id="u1", completed=frozenset({"l1-c1"}), known=frozenset({"l1-c1", "l1-c2"}))

    progress_service.annotate(lesson, "u1", facts)

    assert lesson["percentage"]["percent"] == 33


@pytest.mark.unit
def test_other_actor_completions_are_ignored() -> None:
    lesson = _lesson("l1", 2)

    progress_service.annotate(lesson, "u1", _facts("u2", "l1-c1", "l1-c2"))

    assert lesson["percentage"]["percent"] == 0


@pytest.mark.unit
def test_sequence_preserves_lesson_and_chapter_order() -> None:
    lessons = [_lesson("b", 3), _lesson("a", 2), _lesson("c", 1)]
    expected_ids = [[chapter["id"] for chapter in lesson["chapters"]] for lesson in lessons]

    result = progress_service.annotate(lessons, "u1", _facts("u1", "b-c1", "a-c1", "a-c2"))

    assert result is lessons
    assert [lesson["id"] for lesson in lessons] == ["b", "a", "c"]
    assert [[chapter["id"] for chapter in lesson["chapters"]] for lesson in lessons] == expected_ids
    assert all(chapter["type"] == "chapters" for lesson in lessons for chapter in lesson["chapters"])
    assert [lesson["percentage"]["percent"] for lesson in lessons] == [33, 100, 0]


@pytest.mark.unit
def test_single_node_and_sequence_give_identical_results() -> None:
    facts = _facts("u1", "l1-c1")
    single = _lesson("l1", 3)
    batch = [_lesson("l1", 3)]

    progress_service.annotate(single, "u1", facts)
    progress_service.annotate(batch, "u1", facts)

    assert batch[0] == single


@pytest.mark.unit
def test_annotate_is_idempotent() -> None:
    lessons = [_lesson("l1", 4), _lesson("l2", 0)]
    facts = _facts("u1", "l1-c1", "l1-c2", "l1-c3")

    progress_service.annotate(lessons, "u1", facts)
    first = copy.deepcopy(lessons)
    progress_service.annotate(lessons, "u1", facts)

    assert lessons == first


@pytest.mark.unit
def test_lookup_failure_does_not_abort_sibling_lessons() -> None:
    lessons = [_lesson("ok", 4), _lesson("bad", 2), _lesson("also", 2)]

    def flaky_source(actor_id: str, chapter_id: str) -> bool | None:
        if chapter_id == "bad-c2":
            raise ConnectionError("completion store unavailable")
        return chapter_id in {"ok-c1", "ok-c2", "ok-c3", "also-c1", "bad-c1"}

    result = progress_service.annotate_batch(lessons, "u1", flaky_source)

    assert result.ok is False
    assert [item.status for item in result.items] == [
        ProgressStatus.OK,
        ProgressStatus.LOOKUP_FAILURE,
        ProgressStatus.OK,
    ]
    assert result.percents == [75, 0, 50]
    assert result.failures[0].node_id == "bad"
    assert "completion store unavailable" in (result.failures[0].error or "")
    assert [lesson["percentage"]["percent"] for lesson in lessons] == [75, 0, 50]
    assert all(chapter["type"] == "chapters" for chapter in lessons[1]["chapters"])


@pytest.mark.unit
def test_malformed_node_fails_whole_call_without_mutation() -> None:
    lessons = [_lesson("l1", 2), {"id": "broken"}]
    before = copy.deepcopy(lessons)

    with pytest.raises(InvariantViolation):
        progress_service.annotate(lessons, "u1", _facts("u1"))

    assert lessons == before


@pytest.mark.unit
@pytest.mark.parametrize(
    "value",
    [
        "not-a-node",
        42,
        [{"id": "l1", "chapters": "c1"}],
        [{"id": "l1", "chapters": ["c1"]}],
        [{"id": "l1", "chapters": [{"name": "no id"}]}],
    ],
)
def test_malformed_shapes_raise_invariant_violation(value) -> None:
    with pytest.raises(InvariantViolation):
        progress_service.annotate(value, "u1", _facts("u1"))


@pytest.mark.unit
@pytest.mark.parametrize(
    ("completed", "total", "expected"),
    [
        (0, 0, 0),
        (0, 4, 0),
        (3, 4, 75),
        (1, 3, 33),
        (2, 3, 67),
        (1, 8, 13),
        (4, 4, 100),
        (9, 4, 100),
    ],
)
def test_compute_percent(completed: int, total: int, expected: int) -> None:
    assert progress_service.compute_percent(completed, total) == expected


@pytest.mark.unit
def test_tag_content_marks_enrolled_courses() -> None:
    users = [
        {"id": "u1", "enrolled_courses": [{"id": "l1"}, {"id": "l2"}]},
        {"id": "u2", "enrolled_courses": []},
    ]

    progress_service.tag_content(users, "enrolled_courses", progress_service.COURSE_TYPE)
    progress_service.tag_content(users, "enrolled_courses", progress_service.COURSE_TYPE)

    assert users[0]["enrolled_courses"] == [{"id": "l1", "type": "course"}, {"id": "l2", "type": "course"}]
    assert users[1]["enrolled_courses"] == []
