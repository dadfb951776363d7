import pytest

from conftest import FakeResponse
from school_portal.models.portal import Faculty
from school_portal.services.references import ReferenceUploader
from school_portal.services.semesters import FormInvalid, SemesterForm, SemesterService
from school_portal.services.users import BulkUserForm


def semester_faculty():
    return Faculty(id="f1", code="BSC", name="Science", type="semester", total_semesters_or_years=8)


def test_semester_form_requires_faculty_and_number():
    form = SemesterForm()
    with pytest.raises(FormInvalid, match="Please select a faculty."):
        form.validate()

    form.select_faculty(semester_faculty())
    with pytest.raises(FormInvalid, match="Please enter semester number."):
        form.validate()

    form.semester_number = "0"
    with pytest.raises(FormInvalid):
        form.validate()

    form.semester_number = "3"
    assert form.to_payload() == {"faculty": "f1", "description": "", "semesterNumber": 3}


def test_selecting_faculty_clears_numbers():
    form = SemesterForm(semester_number="2", year_number="4")

    form.select_faculty(Faculty(id="f2", code="MBA", name="Business", type="yearly"))

    assert (form.faculty_type, form.semester_number, form.year_number) == ("yearly", "", "")
    assert form.is_dirty()
    form.reset()
    assert not form.is_dirty()


def test_create_semester_posts_and_resets(client, fake_session):
    fake_session.add("POST", "/sem-api/semesterOrYear", FakeResponse(201, {"message": "created"}))
    service = SemesterService(client)
    form = SemesterForm(description="Spring")
    form.select_faculty(semester_faculty())
    form.semester_number = "2"

    assert service.create(form) is True

    assert fake_session.calls[0]["json"] == {"faculty": "f1", "description": "Spring", "semesterNumber": 2}
    assert service.toast == ("success", "Semester/Year created successfully!")
    assert form.faculty_id == ""


def test_create_semester_invalid_form_sends_nothing(client, fake_session):
    service = SemesterService(client)

    assert service.create(SemesterForm()) is False
    assert service.toast == ("error", "Please select a faculty.")
    assert fake_session.calls == []


def test_semester_list_and_delete(client, fake_session):
    fake_session.add(
        "GET",
        "/sem-api/semesterOrYear",
        FakeResponse(200, [{"_id": "y1", "faculty": {"_id": "f2"}, "yearNumber": 1}, {"_id": "s3", "faculty": "f1", "semesterNumber": 3}]),
    )
    fake_session.add("DELETE", "/sem-api/semesterOrYear/y1", FakeResponse(200, {}))
    service = SemesterService(client)

    labels = [item.label for item in service.load()]
    assert labels == ["Year 1", "Semester 3"]
    assert service.semesters[0].faculty_id == "f2"

    assert service.delete("y1") is True
    assert [item.id for item in service.semesters] == ["s3"]


def test_faculty_codes_failure_sets_toast(client, fake_session):
    fake_session.add("GET", "/faculty-api/facultycode", FakeResponse(500, {}))
    service = SemesterService(client)

    assert service.load_faculties() == []
    assert service.toast == ("error", "Failed to load faculties")


def test_bulk_user_rows_validate(client):
    form = BulkUserForm(client)
    form.update_row(0, "username", "  ")
    form.update_row(0, "email", "nope")

    assert form.submit() is False
    assert form.errors[0]["username"] == "Username is required"
    assert form.errors[0]["email"] == "A valid email is required"
    assert form.errors[0]["password"] == "Password is required"


def test_bulk_user_role_change_clears_student_fields(client, fake_session):
    fake_session.add("GET", "/batch-api/batchcode", FakeResponse(200, {"batches": [{"_id": "b1"}]}))
    form = BulkUserForm(client)

    form.update_row(0, "faculty", "f1")
    assert form.batches["f1"] == [{"_id": "b1"}]
    assert fake_session.calls[0]["params"] == {"faculty": "f1"}

    form.update_row(0, "role", "teacher")
    assert form.rows[0].faculty is None and form.rows[0].batch is None


def test_bulk_user_submit_json_and_reset(client, fake_session):
    fake_session.add("POST", "/user-api/users/bulk", FakeResponse(201, {"message": "2 users created"}))
    form = BulkUserForm(client)
    form.update_row(0, "username", " alice ")
    form.update_row(0, "email", "alice@example.com")
    form.update_row(0, "password", "secret")
    form.add_row()
    form.update_row(1, "username", "tom")
    form.update_row(1, "email", "tom@example.com")
    form.update_row(1, "password", "secret")
    form.update_row(1, "role", "teacher")

    assert form.submit() is True

    users = fake_session.calls[0]["json"]["users"]
    assert users[0] == {"username": "alice", "email": "alice@example.com", "password": "secret", "role": "student"}
    assert users[1]["role"] == "teacher"
    assert form.toast == ("success", "2 users created")
    assert len(form.rows) == 1


def test_bulk_user_field_error_targets_row(client, fake_session):
    fake_session.add(
        "POST",
        "/user-api/users/bulk",
        FakeResponse(409, {"error": "Email already exists", "field": "email", "rowIndex": 1}),
    )
    form = BulkUserForm(client)
    for index in range(2):
        if index:
            form.add_row()
        form.update_row(index, "username", f"user{index}")
        form.update_row(index, "email", f"user{index}@example.com")
        form.update_row(index, "password", "pw")

    assert form.submit() is False

    assert form.errors[1]["email"] == "Email already exists"
    assert form.errors[0]["email"] == ""
    assert form.toast == ("error", "Row 2: Email already exists")


def test_bulk_user_csv_upload(client, fake_session, tmp_path):
    upload = tmp_path / "users.csv"
    upload.write_text("username,email,password,role\n", encoding="utf-8")
    fake_session.add("POST", "/user-api/users/bulk", FakeResponse(200, {}))
    form = BulkUserForm(client, csv_file=upload)

    assert form.submit() is True
    assert fake_session.calls[0]["files"]["file"][0] == "users.csv"
    assert form.csv_file is None


def test_reference_upload_checks_extension_and_file(client, fake_session, tmp_path):
    uploader = ReferenceUploader(client)

    assert uploader.upload(tmp_path / "notes.exe") is False
    assert uploader.error.startswith("Unsupported file type")
    assert uploader.upload(tmp_path / "missing.pdf") is False
    assert uploader.error.startswith("File not found")
    assert fake_session.calls == []


def test_reference_upload_success(client, fake_session, tmp_path):
    document = tmp_path / "syllabus.pdf"
    document.write_bytes(b"%PDF-1.4")
    fake_session.add("POST", "/reference/upload", FakeResponse(200, {"message": "Saved"}))
    uploader = ReferenceUploader(client)

    assert uploader.upload(document) is True
    assert uploader.message == "Saved"
    assert uploader.uploading is False
