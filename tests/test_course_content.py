import json

import pytest

from conftest import FakeResponse
from school_portal.services.assignments import (
    AssignmentGrading,
    GradeInvalid,
    load_group_assignment,
    load_my_submission,
    parse_grade,
)
from school_portal.services.course_feed import CourseFeed

FEED = [
    {"_id": "f1", "type": "assignment", "title": "Essay", "content": "Write 500 words", "createdAt": "2025-03-01T10:00:00Z"},
    {"_id": "f2", "type": "announcement", "title": "", "content": "Room change", "createdAt": "2025-03-05T10:00:00Z"},
    {"_id": "f3", "type": "question", "title": "Warm-up", "createdAt": None},
]


def test_feed_sorted_newest_first(client, fake_session):
    fake_session.add("GET", "/student/feed/ci1", FakeResponse(200, FEED))
    feed = CourseFeed(client, "ci1")

    items = feed.load_feed(topic="t1")

    assert [item.id for item in items] == ["f2", "f1", "f3"]
    assert fake_session.calls[0]["params"] == {"topic": "t1"}
    assert [item.id for item in feed.search("room")] == ["f2"]
    assert [item.id for item in feed.search("", kinds=("assignment", "question"))] == ["f1", "f3"]


def test_feed_failure_sets_error(client, fake_session):
    fake_session.add("GET", "/student/feed/ci1", FakeResponse(403, {"error": "Not enrolled"}))
    feed = CourseFeed(client, "ci1")

    assert feed.load_feed() == []
    assert feed.error == "Not enrolled"


def test_announcement_create_and_delete(client, fake_session):
    fake_session.add("POST", "/announcement-routes/course-announcement", FakeResponse(201, {"announcement": {}}))
    fake_session.add(
        "GET",
        "/announcement-routes/course/ci1",
        FakeResponse(200, {"announcements": [{"_id": "a1", "content": "Hi"}, {"_id": "a2", "content": "Bye"}]}),
    )
    fake_session.add("DELETE", "/announcement-routes/a1", FakeResponse(200, {}))
    feed = CourseFeed(client, "ci1")

    assert feed.create_announcement("<p>Hi</p>", visible_to=["s1"]) is True

    form = fake_session.calls[0]["data"]
    assert form["courseInstance"] == "ci1"
    assert json.loads(form["visibleTo"]) == ["s1"]
    assert [item.kind for item in feed.announcements] == ["announcement", "announcement"]

    assert feed.delete_announcement("a1") is True
    assert [item.id for item in feed.announcements] == ["a2"]


def test_empty_announcement_is_rejected(client, fake_session):
    feed = CourseFeed(client, "ci1")

    assert feed.create_announcement("   ") is False
    assert fake_session.calls == []


def test_edit_announcement_with_attachment(client, fake_session, tmp_path):
    attachment = tmp_path / "slides.pdf"
    attachment.write_bytes(b"%PDF")
    fake_session.add("PATCH", "/announcement-routes/a1", FakeResponse(200, {}))
    fake_session.add("GET", "/announcement-routes/course/ci1", FakeResponse(200, {"announcements": []}))
    feed = CourseFeed(client, "ci1")

    assert feed.edit_announcement("a1", "<p>Updated</p>", attachments=[attachment]) is True

    files = fake_session.calls[0]["files"]
    assert [(name, upload[0]) for name, upload in files] == [("attachments", "slides.pdf")]


def test_parse_grade_bounds():
    assert parse_grade("", 10) is None
    assert parse_grade(" 7.5 ", 10) == 7.5
    assert parse_grade("10", 10) == 10.0
    with pytest.raises(GradeInvalid, match="between 0 and 10"):
        parse_grade("11", 10)
    with pytest.raises(GradeInvalid, match="valid number"):
        parse_grade("A+", 10)


@pytest.fixture
def grading(client, fake_session):
    fake_session.add("GET", "/assignment/as1", FakeResponse(200, {"_id": "as1", "title": "Essay", "maxPoints": 20, "acceptingSubmissions": True}))
    fake_session.add(
        "GET",
        "/assignmentgrading/assignments/as1/submissions",
        FakeResponse(
            200,
            {
                "submissions": [
                    {"_id": "sub1", "student": {"_id": "s1", "username": "alice"}, "status": "submitted"},
                    {"_id": "sub2", "student": {"_id": "s2", "username": "bob"}, "status": "submitted"},
                    {"_id": "sub3", "student": "s3", "status": "draft"},
                ]
            },
        ),
    )
    view = AssignmentGrading(client, "as1")
    assert view.load()
    return view


def test_grading_loads_drafts_too(grading, fake_session):
    assert fake_session.calls[1]["params"] == {"includeDrafts": 1}
    assert grading.max_points == 20
    assert [item.id for item in grading.submitted()] == ["sub1", "sub2"]


def test_grade_saves_and_points_to_next(grading, fake_session):
    fake_session.add("PATCH", "/assignmentgrading/submissions/sub1/grade", FakeResponse(200, {}))

    assert grading.grade("sub1", "18", "Nice work") == "sub2"

    assert fake_session.calls[-1]["json"] == {"grade": 18.0, "feedback": "Nice work"}
    assert grading.submissions[0].score == 18.0
    assert [item.id for item in grading.ungraded()] == ["sub2"]


def test_out_of_range_grade_is_not_sent(grading, fake_session):
    calls_before = len(fake_session.calls)

    assert grading.grade("sub1", "25") is None
    assert grading.error == "Grade must be between 0 and 20"
    assert len(fake_session.calls) == calls_before


def test_toggle_accepting_sends_opposite_and_reloads(grading, fake_session):
    fake_session.add("PATCH", "/assignmentgrading/assignments/as1/accepting", FakeResponse(200, {}))

    assert grading.toggle_accepting() is True

    patch = fake_session.calls_to("PATCH", "/assignmentgrading/assignments/as1/accepting")[0]
    assert patch["json"] == {"acceptingSubmissions": False}
    assert len(fake_session.calls_to("GET", "/assignment/as1")) == 2


def test_group_assignment_and_my_submission(client, fake_session):
    fake_session.add(
        "GET",
        "/group-assignment/g1",
        FakeResponse(
            200,
            {"_id": "g1", "title": "Project", "groups": [{"name": "Red", "members": [{"_id": "s1"}]}, {"members": ["s2"]}]},
        ),
    )
    fake_session.add("GET", "/submission/by-assignment/as1/submission", FakeResponse(404, {"error": "none"}))

    group_assignment = load_group_assignment(client, "g1")

    assert group_assignment.group_for("s2").name == "Group 2"
    assert group_assignment.group_for("s9") is None
    assert load_my_submission(client, "as1") is None
