import pytest

from conftest import FakeResponse, month_payload
from school_portal import main as cli
from school_portal.config.settings import Settings


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args([])


def test_parser_reads_month_options():
    args = cli.build_parser().parse_args(["--token", "abc", "month", "ci1", "--year", "2025", "--month", "3"])

    assert (args.command, args.course_instance, args.year, args.month, args.token) == ("month", "ci1", 2025, 3, "abc")


def test_build_client_prefers_explicit_token(tmp_path):
    config = Settings(app_data_dir=tmp_path)

    client = cli.build_client(config, "abc")

    assert client.headers()["Authorization"] == "Bearer abc"
    assert cli.build_client(config, None).headers()["Authorization"] == "Bearer "


def test_month_command_prints_grid(client, fake_session, capsys):
    payload = month_payload(days=5, sessions={1: "a", 2: "b"}, matrix={"s1": {1: "present", 2: "absent"}})
    payload["stats"]["perStudent"] = {"s1": {"present": 1, "absent": 1, "total": 2, "percentPresent": 50}}
    fake_session.add("GET", "/attendance/course-instances/ci1/month", FakeResponse(200, payload))
    args = cli.build_parser().parse_args(["month", "ci1", "--year", "2025", "--month", "3"])

    assert cli.run_month(client, args) == 0

    output = capsys.readouterr().out
    assert "March 2025" in output
    assert "alice   PA...     1  50" in output


def test_gradebook_command_writes_csv(client, fake_session, tmp_path):
    fake_session.add(
        "GET",
        "/grades/courseInstance/ci1/gradebook",
        FakeResponse(200, {"roster": [{"_id": "s1", "username": "alice"}], "items": [], "grades": []}),
    )
    target = tmp_path / "grades.csv"
    args = cli.build_parser().parse_args(["gradebook", "ci1", "--csv", str(target)])

    assert cli.run_gradebook(client, args) == 0
    assert target.read_text(encoding="utf-8").splitlines()[0] == "Student,Email,Total,Out of,%"
