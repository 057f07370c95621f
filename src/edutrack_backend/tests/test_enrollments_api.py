"""
Enrollment routes: enrolling, progress ownership, unenrolling and the
parent/child restriction.
"""

from unittest.mock import patch

from edutrack_backend.model.enrollment import Enrollment


class TestEnroll:

    def test_owner_enrolls_student(self, client, make_user, make_course):
        headers = make_user("t1", "Teacher")
        course = make_course("t1")

        response = client.post("/enrollments", json={"courseId": course.id, "studentId": "s1"}, headers=headers)

        assert response.status_code == 201
        body = response.json()
        assert body["teacherId"] == "t1"
        assert body["institutionId"] == "inst-1"
        assert body["progress"] == 0
        assert body["status"] == "active"
        assert body["enrolledAt"] is not None

    def test_admin_enrollment_is_owned_by_course_teacher(self, client, make_user, make_course):
        headers = make_user("ia", "InstitutionAdmin")
        course = make_course("t1")

        response = client.post("/enrollments", json={"courseId": course.id, "studentId": "s1"}, headers=headers)

        assert response.status_code == 201
        assert response.json()["teacherId"] == "t1"

    def test_enrolling_into_missing_course_is_404(self, client, make_user):
        headers = make_user("t1", "Teacher")

        response = client.post("/enrollments", json={"courseId": "missing", "studentId": "s1"}, headers=headers)

        assert response.status_code == 404

    def test_teacher_cannot_enroll_into_foreign_course(self, client, make_user, make_course):
        headers = make_user("t2", "Teacher")
        course = make_course("t1", published=True)

        response = client.post("/enrollments", json={"courseId": course.id, "studentId": "s1"}, headers=headers)

        assert response.status_code == 403

    def test_duplicate_active_enrollment_is_rejected(self, client, make_user, make_course, make_enrollment):
        headers = make_user("t1", "Teacher")
        course = make_course("t1")
        make_enrollment(course, "s1")

        response = client.post("/enrollments", json={"courseId": course.id, "studentId": "s1"}, headers=headers)

        assert response.status_code == 400

    def test_student_cannot_enroll(self, client, make_user, make_course):
        headers = make_user("s1", "Student")
        course = make_course("t1", published=True)

        response = client.post("/enrollments", json={"courseId": course.id, "studentId": "s1"}, headers=headers)

        assert response.status_code == 403


class TestProgress:

    def test_owning_teacher_updates_progress(self, client, make_user, make_course, make_enrollment):
        headers = make_user("t1", "Teacher")
        enrollment = make_enrollment(make_course("t1"), "s1")

        response = client.put(f"/enrollments/{enrollment.id}/progress", json={"progress": 55}, headers=headers)

        assert response.status_code == 200
        assert response.json()["progress"] == 55

    def test_plain_put_updates_progress(self, client, make_user, make_course, make_enrollment):
        headers = make_user("t1", "Teacher")
        enrollment = make_enrollment(make_course("t1"), "s1")

        response = client.put(f"/enrollments/{enrollment.id}", json={"progress": 80}, headers=headers)

        assert response.status_code == 200
        assert response.json()["progress"] == 80

    def test_other_teacher_is_forbidden_even_in_same_institution(self, client, make_user, make_course, make_enrollment):
        make_user("t1", "Teacher")
        headers = make_user("t2", "Teacher")
        enrollment = make_enrollment(make_course("t1"), "s1")

        response = client.put(f"/enrollments/{enrollment.id}/progress", json={"progress": 55}, headers=headers)

        assert response.status_code == 403

    def test_admins_are_forbidden(self, client, make_user, make_course, make_enrollment):
        enrollment = make_enrollment(make_course("t1"), "s1")

        for uid, role in (("ia", "InstitutionAdmin"), ("sa", "SuperAdmin")):
            headers = make_user(uid, role)
            response = client.put(f"/enrollments/{enrollment.id}/progress", json={"progress": 10}, headers=headers)
            assert response.status_code == 403

    def test_missing_enrollment_is_404(self, client, make_user):
        headers = make_user("t1", "Teacher")

        response = client.put("/enrollments/missing/progress", json={"progress": 10}, headers=headers)

        assert response.status_code == 404

    def test_progress_out_of_range_is_validation_error(self, client, make_user, make_course, make_enrollment):
        headers = make_user("t1", "Teacher")
        enrollment = make_enrollment(make_course("t1"), "s1")

        for value in (-1, 100.5, "lots"):
            response = client.put(f"/enrollments/{enrollment.id}/progress", json={"progress": value}, headers=headers)
            assert response.status_code == 400

    def test_boundaries_are_accepted(self, client, make_user, make_course, make_enrollment):
        headers = make_user("t1", "Teacher")
        enrollment = make_enrollment(make_course("t1"), "s1")

        for value in (0, 100):
            response = client.put(f"/enrollments/{enrollment.id}/progress", json={"progress": value}, headers=headers)
            assert response.status_code == 200

    def test_notification_is_queued_for_student(self, client, make_user, make_course, make_enrollment):
        headers = make_user("t1", "Teacher")
        make_user("s1", "Student")
        enrollment = make_enrollment(make_course("t1", title="Algebra"), "s1")

        with patch("edutrack_backend.api.enrollments.mail_enabled", return_value=True), \
             patch("edutrack_backend.api.enrollments.send_progress_notification") as send:
            response = client.put(f"/enrollments/{enrollment.id}/progress", json={"progress": 70}, headers=headers)

        assert response.status_code == 200
        send.assert_called_once_with("s1@example.org", "Algebra", 70.0)


class TestUnenroll:

    def test_unenroll_marks_removed(self, client, db, make_user, make_course, make_enrollment):
        headers = make_user("t1", "Teacher")
        enrollment = make_enrollment(make_course("t1"), "s1")

        response = client.delete(f"/enrollments/{enrollment.id}", headers=headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Enrollment removed successfully."
        db.expire_all()
        assert db.query(Enrollment).filter(Enrollment.id == enrollment.id).first().status == "removed"

    def test_second_unenroll_is_rejected(self, client, make_user, make_course, make_enrollment):
        headers = make_user("t1", "Teacher")
        enrollment = make_enrollment(make_course("t1"), "s1")

        client.delete(f"/enrollments/{enrollment.id}", headers=headers)
        response = client.delete(f"/enrollments/{enrollment.id}", headers=headers)

        assert response.status_code == 400

    def test_removed_enrollment_leaves_active_listing(self, client, make_user, make_course, make_enrollment):
        headers = make_user("t1", "Teacher")
        enrollment = make_enrollment(make_course("t1"), "s1")
        client.delete(f"/enrollments/{enrollment.id}", headers=headers)

        active = client.get("/enrollments", headers=headers).json()["items"]
        removed = client.get("/enrollments", params={"status": "removed"}, headers=headers).json()["items"]

        assert active == []
        assert [e["id"] for e in removed] == [enrollment.id]

    def test_student_cannot_unenroll(self, client, make_user, make_course, make_enrollment):
        headers = make_user("s1", "Student")
        enrollment = make_enrollment(make_course("t1"), "s1")

        response = client.delete(f"/enrollments/{enrollment.id}", headers=headers)

        assert response.status_code == 403


class TestVisibility:

    def test_parent_reads_child_enrollments(self, client, make_user, make_course, make_enrollment):
        headers = make_user("p1", "Parent", child_id="s1")
        course = make_course("t1")
        mine = make_enrollment(course, "s1")
        make_enrollment(course, "s2")

        response = client.get("/enrollments/students/s1", headers=headers)

        assert response.status_code == 200
        assert [e["id"] for e in response.json()] == [mine.id]

    def test_parent_is_forbidden_for_other_student(self, client, make_user):
        headers = make_user("p1", "Parent", child_id="s1")

        response = client.get("/enrollments/students/s2", headers=headers)

        assert response.status_code == 403

    def test_student_lists_only_own(self, client, make_user, make_course, make_enrollment):
        headers = make_user("s1", "Student")
        course = make_course("t1")
        mine = make_enrollment(course, "s1")
        make_enrollment(course, "s2")

        response = client.get("/enrollments", headers=headers)

        assert [e["id"] for e in response.json()["items"]] == [mine.id]

    def test_teacher_filters_by_course(self, client, make_user, make_course, make_enrollment):
        headers = make_user("t1", "Teacher")
        first = make_course("t1", title="A")
        second = make_course("t1", title="B")
        wanted = make_enrollment(first, "s1")
        make_enrollment(second, "s1")

        response = client.get("/enrollments", params={"courseId": first.id}, headers=headers)

        assert [e["id"] for e in response.json()["items"]] == [wanted.id]

    def test_get_by_id_distinguishes_missing_and_forbidden(self, client, make_user, make_course, make_enrollment):
        headers = make_user("s2", "Student")
        enrollment = make_enrollment(make_course("t1"), "s1")

        assert client.get("/enrollments/missing", headers=headers).status_code == 404
        assert client.get(f"/enrollments/{enrollment.id}", headers=headers).status_code == 403
