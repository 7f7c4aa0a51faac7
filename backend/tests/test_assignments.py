"""Tests for assignments, submissions and grading."""

from dataclasses import replace
from datetime import timedelta

import pytest
from fastapi import status

from schoolhub.config import get_settings
from schoolhub.models import Assignment, Grade, GradeType, Notification, Submission, SubmissionStatus, UserRole
from schoolhub.timeutil import utcnow


def assignment_payload(course, **overrides):
    payload = {
        "course": course.id,
        "title": "Photosynthesis essay",
        "description": "Explain the light reactions",
        "dueDate": (utcnow() + timedelta(days=3)).isoformat(),
        "totalPoints": 50,
    }
    payload.update(overrides)
    return payload


def notification_count(db, user):
    return db.query(Notification).filter(Notification.recipient_id == user.id).count()


class TestAssignmentCrud:
    def test_create_draft_is_silent(self, client, db_session, course, teacher, student, auth_headers):
        response = client.post("/api/assignments", json=assignment_payload(course), headers=auth_headers(teacher))
        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()["data"]
        assert data["course"] == course.id
        assert data["isPublished"] is False
        assert data["createdBy"] == teacher.id
        assert notification_count(db_session, student) == 0

    def test_create_published_notifies_students(self, client, db_session, course, teacher, student,
                                                auth_headers):
        response = client.post("/api/assignments", json=assignment_payload(course, isPublished=True),
                               headers=auth_headers(teacher))
        assert response.status_code == status.HTTP_201_CREATED
        assert notification_count(db_session, student) == 1

    def test_publishing_later_notifies_once(self, client, db_session, make_assignment, course, teacher, student,
                                            auth_headers):
        draft = make_assignment(course, is_published=False)
        headers = auth_headers(teacher)

        client.put(f"/api/assignments/{draft.id}", json={"isPublished": True}, headers=headers)
        client.put(f"/api/assignments/{draft.id}", json={"title": "Renamed", "isPublished": True}, headers=headers)

        assert notification_count(db_session, student) == 1
        db_session.refresh(draft)
        assert draft.title == "Renamed"

    def test_other_teacher_cannot_create(self, client, course, make_user, auth_headers):
        outsider = make_user(UserRole.teacher)
        response = client.post("/api/assignments", json=assignment_payload(course), headers=auth_headers(outsider))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_negative_points_rejected(self, client, course, teacher, auth_headers):
        response = client.post("/api/assignments", json=assignment_payload(course, totalPoints=-1),
                               headers=auth_headers(teacher))
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_delete_keeps_grades_detached(self, client, db_session, assignment, student, teacher, auth_headers):
        db_session.add(Submission(assignment_id=assignment.id, student_id=student.id))
        db_session.add(Grade(student_id=student.id, course_id=assignment.course_id, assignment_id=assignment.id,
                             type=GradeType.assignment, score=40, max_score=50, graded_by=teacher.id))
        db_session.commit()

        response = client.delete(f"/api/assignments/{assignment.id}", headers=auth_headers(teacher))
        assert response.status_code == 200
        assert db_session.get(Assignment, assignment.id) is None
        assert db_session.query(Submission).count() == 0
        [grade] = db_session.query(Grade).all()
        assert grade.assignment_id is None

    def test_list_sorted_by_due_date(self, client, make_assignment, course, student, auth_headers):
        later = make_assignment(course, title="Later", due_date=utcnow() + timedelta(days=9))
        sooner = make_assignment(course, title="Sooner", due_date=utcnow() + timedelta(days=1))
        response = client.get("/api/assignments?sort=dueDate", headers=auth_headers(student))
        assert [a["id"] for a in response.json()["data"]] == [sooner.id, later.id]


class TestAssignmentDetail:
    def test_student_sees_own_submission(self, client, db_session, assignment, student, make_user, auth_headers):
        classmate = make_user(UserRole.student)
        assignment.course.students.append(classmate)
        db_session.add_all([
            Submission(assignment_id=assignment.id, student_id=student.id, content="mine"),
            Submission(assignment_id=assignment.id, student_id=classmate.id, content="theirs"),
        ])
        db_session.commit()

        data = client.get(f"/api/assignments/{assignment.id}", headers=auth_headers(student)).json()["data"]
        assert data["hasSubmitted"] is True
        assert data["submission"]["content"] == "mine"
        assert [s["student"] for s in data["submissions"]] == [student.id]
        assert "stats" not in data

    def test_teacher_sees_stats(self, client, db_session, make_assignment, course, student, make_user, teacher,
                                auth_headers):
        past = make_assignment(course, due_date=utcnow() - timedelta(days=1), allow_late_submissions=True)
        classmate = make_user(UserRole.student)
        db_session.add_all([
            Submission(assignment_id=past.id, student_id=student.id, submitted_at=utcnow() - timedelta(days=2),
                       score=40),
            Submission(assignment_id=past.id, student_id=classmate.id, score=30),
        ])
        db_session.commit()

        data = client.get(f"/api/assignments/{past.id}", headers=auth_headers(teacher)).json()["data"]
        assert data["stats"] == {"total": 2, "onTime": 1, "late": 1, "graded": 2, "averageScore": 35.0}
        assert len(data["submissions"]) == 2


class TestSubmissions:
    def test_submit(self, client, assignment, student, teacher, db_session, auth_headers):
        response = client.post(f"/api/assignments/{assignment.id}/submit",
                               json={"content": "answer", "attachments": [{"fileName": "a.txt", "fileUrl": "/u/a"}]},
                               headers=auth_headers(student))
        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()["data"]
        assert data["status"] == "submitted"
        assert data["attachments"][0]["fileName"] == "a.txt"
        assert notification_count(db_session, teacher) == 1

    def test_resubmission_clears_previous_grade(self, client, db_session, assignment, student, teacher,
                                                auth_headers):
        db_session.add(Submission(assignment_id=assignment.id, student_id=student.id, score=10,
                                  status=SubmissionStatus.graded, graded_by=teacher.id, graded_at=utcnow()))
        db_session.commit()

        data = client.post(f"/api/assignments/{assignment.id}/submit", json={"content": "v2"},
                           headers=auth_headers(student)).json()["data"]
        assert data["status"] == "submitted"
        assert data["score"] is None
        assert data["gradedBy"] is None
        assert db_session.query(Submission).count() == 1

    def test_not_enrolled(self, client, assignment, make_user, auth_headers):
        outsider = make_user(UserRole.student)
        response = client.post(f"/api/assignments/{assignment.id}/submit", json={}, headers=auth_headers(outsider))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_past_due_without_late_submissions(self, client, make_assignment, course, student, auth_headers):
        closed = make_assignment(course, due_date=utcnow() - timedelta(hours=1))
        response = client.post(f"/api/assignments/{closed.id}/submit", json={}, headers=auth_headers(student))
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "due date has passed" in response.json()["message"]

    def test_unpublished_rejected(self, client, make_assignment, course, student,
                                                       auth_headers):
        draft = make_assignment(course, is_published=False)
        response = client.post(f"/api/assignments/{draft.id}/submit", json={}, headers=auth_headers(student))
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_list_submissions_scoped(self, client, db_session, assignment, student, make_user, teacher,
                                     auth_headers):
        classmate = make_user(UserRole.student)
        db_session.add_all([
            Submission(assignment_id=assignment.id, student_id=student.id),
            Submission(assignment_id=assignment.id, student_id=classmate.id),
        ])
        db_session.commit()

        teacher_view = client.get(f"/api/assignments/{assignment.id}/submissions", headers=auth_headers(teacher))
        assert teacher_view.json()["total"] == 2
        student_view = client.get(f"/api/assignments/{assignment.id}/submissions", headers=auth_headers(student))
        assert [s["student"] for s in student_view.json()["data"]] == [student.id]


class TestGrading:
    @pytest.fixture
    def submission(self, db_session, assignment, student):
        submission = Submission(assignment_id=assignment.id, student_id=student.id, content="work")
        db_session.add(submission)
        db_session.commit()
        return submission

    def test_grade_without_publishing(self, client, db_session, submission, teacher, student, auth_headers):
        response = client.put(f"/api/assignments/submissions/{submission.id}", json={"score": 75},
                              headers=auth_headers(teacher))
        assert response.status_code == 200
        assert response.json()["data"]["gradedBy"] == teacher.id

        [grade] = db_session.query(Grade).all()
        assert grade.is_published is False
        assert grade.percentage == 75.0

        # Unpublished grades stay hidden from the student
        grades = client.get("/api/grades", headers=auth_headers(student)).json()
        assert grades["total"] == 0

    def test_score_above_total_is_invalid(self, client, db_session, submission, teacher, auth_headers):
        response = client.put(f"/api/assignments/submissions/{submission.id}", json={"score": 101},
                              headers=auth_headers(teacher))
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert db_session.query(Grade).count() == 0

    def test_only_course_staff_grade(self, client, submission, make_user, student, auth_headers):
        for user in (make_user(UserRole.teacher), student):
            response = client.put(f"/api/assignments/submissions/{submission.id}", json={"score": 5},
                                  headers=auth_headers(user))
            assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_submission(self, client, teacher, auth_headers):
        response = client.put("/api/assignments/submissions/missing", json={"score": 5},
                              headers=auth_headers(teacher))
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestAttachments:
    def test_upload_appends_files(self, client, assignment, teacher, auth_headers):
        response = client.post(
            f"/api/assignments/{assignment.id}/attachments",
            files=[("files", ("brief.txt", b"read me", "text/plain")), ("files", ("data.csv", b"a,b", "text/csv"))],
            headers=auth_headers(teacher),
        )
        assert response.status_code == 200
        attachments = response.json()["data"]["attachments"]
        assert [a["fileName"] for a in attachments] == ["brief.txt", "data.csv"]
        assert all(a["fileUrl"].startswith("/uploads/assignments/") for a in attachments)
        assert attachments[1]["fileType"] == "text/csv"

    def test_upload_too_large(self, client, assignment, teacher, auth_headers, monkeypatch):
        small = replace(get_settings(), max_upload_size=4)
        monkeypatch.setattr("schoolhub.uploads.get_settings", lambda: small)
        response = client.post(
            f"/api/assignments/{assignment.id}/attachments",
            files=[("files", ("big.bin", b"0123456789", "application/octet-stream"))],
            headers=auth_headers(teacher),
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "maximum upload size" in response.json()["message"]
