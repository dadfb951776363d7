import pytest

from conftest import FakeResponse
from school_portal.services.gradebook import GradebookViewModel, cell_chip, grade_band, star_rating

PAYLOAD = {
    "roster": [
        {"_id": "s2", "username": "bob", "email": "bob@example.com"},
        {"_id": "s1", "username": "alice", "email": "alice@example.com"},
    ],
    "items": [
        {"id": "a1", "type": "assignment", "title": "Essay", "maxPoints": 10},
        {"id": "q1", "type": "question", "title": "Quiz, part 1", "maxPoints": 5.5},
    ],
    "grades": [
        {"studentId": "s1", "itemId": "a1", "score": 8, "maxPoints": 10, "status": "graded"},
        {"studentId": "s1", "itemId": "q1", "score": None, "maxPoints": 5.5, "status": "submitted"},
        {"studentId": "s2", "itemId": "a1", "score": None, "maxPoints": 10, "status": "missing"},
    ],
    "policies": {"scheme": "points"},
}

GRADEBOOK_PATH = "/grades/courseInstance/ci1/gradebook"


@pytest.fixture
def gradebook(client, fake_session):
    fake_session.add("GET", GRADEBOOK_PATH, FakeResponse(200, PAYLOAD))
    view = GradebookViewModel(client, "ci1")
    view.load()
    return view


def test_load_falls_back_to_alternate_endpoint(client, fake_session):
    fake_session.add("GET", "/grades/courseInstance/ci1/gradebook", FakeResponse(404, {}))
    fake_session.add("GET", "/courseInstance/ci1/gradebook", FakeResponse(200, PAYLOAD))
    view = GradebookViewModel(client, "ci1")

    assert view.load() is not None
    assert [call["path"] for call in fake_session.calls] == [
        "/grades/courseInstance/ci1/gradebook",
        "/courseInstance/ci1/gradebook",
    ]


def test_failed_refresh_keeps_previous_data(gradebook, fake_session):
    fake_session.routes.clear()
    fake_session.add("GET", GRADEBOOK_PATH, FakeResponse(500, {"error": "boom"}))
    previous = gradebook.data

    assert gradebook.refresh() is None
    assert gradebook.data is previous
    assert gradebook.error == "boom"


def test_roster_sorted_and_searchable(gradebook):
    assert [row.id for row in gradebook.roster()] == ["s1", "s2"]

    gradebook.search = "BOB@"
    assert [row.id for row in gradebook.roster()] == ["s2"]


def test_row_totals_skip_unassigned_cells(gradebook):
    totals = gradebook.row_totals()

    assert (totals["s1"].earned, totals["s1"].possible) == (8.0, 15.5)
    # s2 has no q1 cell, so only a1 counts toward what is possible
    assert (totals["s2"].earned, totals["s2"].possible) == (0.0, 10.0)
    assert totals["s2"].percent == 0.0


def test_filters_limit_items(gradebook):
    gradebook.filter = "missing"
    assert [item.id for item in gradebook.visible_items()] == ["a1"]

    gradebook.filter = "ungraded"
    assert [item.id for item in gradebook.visible_items()] == ["a1", "q1"]

    with pytest.raises(ValueError):
        gradebook.filter = "late"


def test_export_csv(gradebook, tmp_path):
    target = tmp_path / "out" / "gradebook.csv"

    text = gradebook.export_csv(target)

    assert text.splitlines() == [
        'Student,Email,Essay (10),"Quiz, part 1 (5.5)",Total,Out of,%',
        "alice,alice@example.com,8,,8,15.5,51.6%",
        "bob,bob@example.com,,,0,10,0.0%",
    ]
    assert not text.endswith("\n")
    assert target.read_text(encoding="utf-8") == text


def test_chips_bands_and_stars(gradebook):
    assert cell_chip(gradebook.cell("s1", "a1")) == "Graded"
    assert cell_chip(gradebook.cell("s1", "q1")) == "Pending"
    assert cell_chip(gradebook.cell("s2", "a1")) == "Missing"
    assert cell_chip(gradebook.cell("s2", "q1")) is None
    assert [grade_band(value) for value in (95, 85, 75, 65, 10)] == ["excellent", "good", "fair", "poor", "failing"]
    assert star_rating(50) == 3
    assert star_rating(130) == 5
    assert star_rating(-5) == 0


def test_filters_before_load_show_nothing(client):
    view = GradebookViewModel(client, "ci1")
    view.filter = "missing"

    assert view.visible_items() == []
    assert view.row_totals() == {}
