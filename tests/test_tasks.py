"""
Task and assignment tracker tests
"""
from volunteer_connect.models import ActivityParticipant, TaskUser
from volunteer_connect.models.task import TaskStatus


def tasks_url(activity, task=None):
    base = f"/api/activities/{activity.id}/tasks"
    return f"{base}/{task.id}" if task is not None else base


class TestCreateTask:

    def test_activity_creator_creates_task(self, client, volunteer, auth_headers, make_activity):
        activity = make_activity(volunteer)
        response = client.post(tasks_url(activity), headers=auth_headers, json={"title": "Bring gloves"})
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["status"] == "in-progress"
        assert data["completed"] is False
        assert data["creator_is_admin"] is False

    def test_participant_creates_task(self, client, admin_user, volunteer, auth_headers, make_activity, db_session):
        activity = make_activity(admin_user)
        db_session.add(ActivityParticipant(activity_id=activity.id, user_id=volunteer.id))
        db_session.commit()
        response = client.post(tasks_url(activity), headers=auth_headers, json={"title": "Set up tables"})
        assert response.status_code == 201

    def test_outsider_cannot_create(self, client, admin_user, auth_headers, make_activity):
        activity = make_activity(admin_user)
        response = client.post(tasks_url(activity), headers=auth_headers, json={"title": "Sneaky"})
        assert response.status_code == 403

    def test_title_required(self, client, volunteer, auth_headers, make_activity):
        activity = make_activity(volunteer)
        response = client.post(tasks_url(activity), headers=auth_headers, json={"description": "no title"})
        assert response.status_code == 400
        assert response.json()["message"] == "Task title is required"

    def test_legacy_completed_flag_maps_to_status(self, client, volunteer, auth_headers, make_activity):
        activity = make_activity(volunteer)
        data = client.post(tasks_url(activity), headers=auth_headers, json={
            "title": "Done already", "completed": True,
        }).json()["data"]
        assert data["status"] == "completed"
        assert data["completed"] is True

    def test_status_wins_over_completed_flag(self, client, volunteer, auth_headers, make_activity):
        activity = make_activity(volunteer)
        data = client.post(tasks_url(activity), headers=auth_headers, json={
            "title": "Conflicting", "status": "in-progress", "completed": True,
        }).json()["data"]
        assert data["status"] == "in-progress"

    def test_invalid_status_rejected(self, client, volunteer, auth_headers, make_activity):
        activity = make_activity(volunteer)
        response = client.post(tasks_url(activity), headers=auth_headers, json={"title": "x", "status": "paused"})
        assert response.status_code == 400


class TestListTasks:

    def test_progress_recomputed(self, client, admin_user, auth_headers, make_activity, make_task):
        activity = make_activity(admin_user)
        make_task(activity, admin_user, status=TaskStatus.completed)
        make_task(activity, admin_user)
        make_task(activity, admin_user)
        body = client.get(tasks_url(activity), headers=auth_headers).json()
        assert body["count"] == 3
        assert body["data"]["progress"] == 33

    def test_private_activity_tasks_hidden(self, client, volunteer, other_headers, make_activity):
        activity = make_activity(volunteer)
        assert client.get(tasks_url(activity), headers=other_headers).status_code == 403

    def test_get_single_task(self, client, admin_user, auth_headers, make_activity, make_task):
        activity = make_activity(admin_user)
        task = make_task(activity, admin_user, title="Set up tables", status=TaskStatus.completed)
        response = client.get(tasks_url(activity, task), headers=auth_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["title"] == "Set up tables"
        assert data["completed"] is True

    def test_task_of_other_activity_not_found(self, client, admin_user, auth_headers, make_activity, make_task):
        first = make_activity(admin_user)
        second = make_activity(admin_user)
        task = make_task(first, admin_user)
        assert client.get(tasks_url(second, task), headers=auth_headers).status_code == 404


class TestUpdateTask:
    """Edit rights: admin, or non-admin creator of own task; assignees status only"""

    def test_no_fields(self, client, volunteer, auth_headers, make_activity, make_task):
        activity = make_activity(volunteer)
        task = make_task(activity, volunteer)
        response = client.put(tasks_url(activity, task), headers=auth_headers, json={})
        assert response.status_code == 400
        assert response.json()["message"] == "No fields to update"

    def test_creator_edits_own_task(self, client, volunteer, auth_headers, make_activity, make_task):
        activity = make_activity(volunteer)
        task = make_task(activity, volunteer)
        response = client.put(tasks_url(activity, task), headers=auth_headers, json={
            "title": "Renamed", "total_hours": 4,
        })
        assert response.status_code == 200
        assert response.json()["data"]["title"] == "Renamed"
        assert response.json()["data"]["total_hours"] == 4

    def test_volunteer_cannot_edit_admin_task_in_own_activity(
        self, client, admin_user, volunteer, auth_headers, make_activity, make_task
    ):
        activity = make_activity(volunteer)
        task = make_task(activity, admin_user)
        response = client.put(tasks_url(activity, task), headers=auth_headers, json={"title": "Mine now"})
        assert response.status_code == 403

    def test_other_user_cannot_edit(self, client, admin_user, volunteer, other_headers, make_activity, make_task):
        activity = make_activity(admin_user)
        task = make_task(activity, volunteer)
        response = client.put(tasks_url(activity, task), headers=other_headers, json={"title": "Nope"})
        assert response.status_code == 403

    def test_assignee_may_change_status_only(
        self, client, admin_user, other_volunteer, other_headers, make_activity, make_task, db_session
    ):
        activity = make_activity(admin_user)
        task = make_task(activity, admin_user)
        db_session.add(TaskUser(task_id=task.id, user_id=other_volunteer.id))
        db_session.commit()

        ok = client.put(tasks_url(activity, task), headers=other_headers, json={"status": "completed"})
        assert ok.status_code == 200
        assert ok.json()["data"]["completed"] is True

        denied = client.put(tasks_url(activity, task), headers=other_headers, json={"title": "Changed"})
        assert denied.status_code == 403

    def test_admin_edits_any_task(self, client, admin_headers, volunteer, make_activity, make_task):
        activity = make_activity(volunteer)
        task = make_task(activity, volunteer)
        response = client.put(tasks_url(activity, task), headers=admin_headers, json={"completed": True})
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "completed"


class TestToggleAndDelete:

    def test_toggle_lowers_progress_status_unchanged(self, client, admin_user, admin_headers, make_activity, make_task):
        activity = make_activity(admin_user)
        done = make_task(activity, admin_user, status=TaskStatus.completed)
        make_task(activity, admin_user, status=TaskStatus.completed)

        before = client.get(f"/api/activities/{activity.id}", headers=admin_headers).json()["data"]
        assert before["progress"] == 100

        toggled = client.post(f"{tasks_url(activity, done)}/toggle", headers=admin_headers).json()["data"]
        assert toggled["status"] == "in-progress"

        after = client.get(f"/api/activities/{activity.id}", headers=admin_headers).json()["data"]
        assert after["progress"] == 50
        assert after["status"] == before["status"] == "upcoming"

    def test_delete_own_task(self, client, volunteer, auth_headers, make_activity, make_task):
        activity = make_activity(volunteer)
        task = make_task(activity, volunteer)
        assert client.delete(tasks_url(activity, task), headers=auth_headers).status_code == 200
        assert client.get(tasks_url(activity), headers=auth_headers).json()["count"] == 0

    def test_task_in_other_activity_is_404(self, client, volunteer, auth_headers, make_activity, make_task):
        first = make_activity(volunteer)
        second = make_activity(volunteer)
        task = make_task(first, volunteer)
        assert client.delete(tasks_url(second, task), headers=auth_headers).status_code == 404


class TestAssignments:

    def test_assign_is_idempotent(self, client, admin_user, admin_headers, volunteer, make_activity, make_task, db_session):
        activity = make_activity(admin_user)
        task = make_task(activity, admin_user)
        url = f"{tasks_url(activity, task)}/users"
        first = client.post(url, headers=admin_headers, json={"user_id": volunteer.id})
        second = client.post(url, headers=admin_headers, json={"user_id": volunteer.id})
        assert first.status_code == second.status_code == 200
        assert first.json()["data"]["id"] == second.json()["data"]["id"]
        db_session.expire_all()
        assert db_session.query(TaskUser).filter_by(task_id=task.id).count() == 1

    def test_assign_inactive_user_404(self, client, admin_user, admin_headers, make_user, make_activity, make_task):
        activity = make_activity(admin_user)
        task = make_task(activity, admin_user)
        inactive = make_user(is_active=False)
        response = client.post(f"{tasks_url(activity, task)}/users", headers=admin_headers, json={"user_id": inactive.id})
        assert response.status_code == 404

    def test_participant_cannot_assign(self, client, admin_user, volunteer, auth_headers, make_activity, make_task, db_session):
        activity = make_activity(admin_user)
        task = make_task(activity, admin_user)
        db_session.add(ActivityParticipant(activity_id=activity.id, user_id=volunteer.id))
        db_session.commit()
        response = client.post(f"{tasks_url(activity, task)}/users", headers=auth_headers, json={"user_id": volunteer.id})
        assert response.status_code == 403

    def test_update_and_remove_assignment(self, client, admin_user, admin_headers, volunteer, make_activity, make_task):
        activity = make_activity(admin_user)
        task = make_task(activity, admin_user)
        base = f"{tasks_url(activity, task)}/users"
        client.post(base, headers=admin_headers, json={"user_id": volunteer.id})

        updated = client.put(f"{base}/{volunteer.id}", headers=admin_headers, json={"status": "in-progress"})
        assert updated.json()["data"]["status"] == "in-progress"
        assert client.put(f"{base}/{volunteer.id}", headers=admin_headers, json={"status": "nope"}).status_code == 400

        assert client.delete(f"{base}/{volunteer.id}", headers=admin_headers).status_code == 200
        assert client.delete(f"{base}/{volunteer.id}", headers=admin_headers).status_code == 404

    def test_my_tasks(self, client, admin_user, volunteer, auth_headers, make_activity, make_task, db_session):
        own_activity = make_activity(volunteer)
        created = make_task(own_activity, volunteer)
        public = make_activity(admin_user)
        assigned = make_task(public, admin_user)
        db_session.add(TaskUser(task_id=assigned.id, user_id=volunteer.id))
        db_session.commit()

        body = client.get("/api/activities/tasks/my-tasks", headers=auth_headers).json()
        types = {t["id"]: t["task_type"] for t in body["data"]}
        assert types == {created.id: "created", assigned.id: "assigned"}
