"""Comprehensive tests for TaskRepository."""

from datetime import datetime, timedelta

import pytest

from task_tracker.exceptions import InvalidArgumentError, TaskNotFoundError
from task_tracker.models import Status, Task
from task_tracker.repository import TaskRepository, next_task_id, resolve_filter
from task_tracker.storage import JsonStorage


class FakeClock:
    """Clock that advances by one minute on every call."""

    def __init__(self, start=datetime(2024, 1, 1, 9, 0, 0)):
        self.now = start

    def __call__(self):
        current = self.now
        self.now += timedelta(minutes=1)
        return current


class TestTaskRepository:
    """Test suite for TaskRepository."""

    @pytest.fixture
    def storage(self, tmp_path):
        """Create a JsonStorage backed by a temporary file."""
        return JsonStorage(tmp_path / "tasks.json")

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def repo(self, storage, clock):
        """Create a TaskRepository with temporary storage."""
        return TaskRepository(storage, clock=clock)

    def test_add_task(self, repo):
        """Test adding a task on an empty store."""
        task = repo.add_task("Buy milk")

        assert task.id == 1
        assert task.description == "Buy milk"
        assert task.status == Status.TODO
        assert task.created_at == task.updated_at

    def test_add_task_persists(self, repo, storage):
        """Test that the new task is written to storage."""
        repo.add_task("Buy milk")

        loaded = storage.load()
        assert len(loaded) == 1
        assert loaded[0].description == "Buy milk"

    def test_add_multiple_tasks_sequential_ids(self, repo):
        """Test that N adds on an empty store yield IDs 1..N in order."""
        ids = [repo.add_task(f"Task {i}").id for i in range(1, 6)]
        assert ids == [1, 2, 3, 4, 5]

    def test_add_uses_max_id_not_last(self, repo, storage):
        """Test that the next ID is one past the highest, whatever the order."""
        storage.save([
            Task(id=7, description="A"),
            Task(id=3, description="B"),
        ])

        assert repo.add_task("C").id == 8

    def test_delete_does_not_reuse_middle_id(self, repo):
        """Test that a deleted ID below the maximum is never handed out again."""
        repo.add_task("A")
        repo.add_task("B")
        repo.add_task("C")
        repo.delete_task(2)

        task = repo.add_task("D")
        assert task.id == 4
        assert [t.id for t in repo.list_tasks()] == [1, 3, 4]

    def test_delete_last_remaining_task_resets_to_one(self, repo):
        """Test that adding after emptying the store starts at 1."""
        repo.add_task("A")
        repo.delete_task(1)

        assert repo.add_task("B").id == 1

    def test_update_task(self, repo):
        """Test updating a task's description."""
        original = repo.add_task("Original")

        updated = repo.update_task(original.id, "Changed")

        assert updated.description == "Changed"
        assert updated.created_at == original.created_at
        assert updated.updated_at > original.updated_at
        assert repo.get_task(original.id).description == "Changed"

    def test_update_nonexistent_task(self, repo):
        """Test that updating an unknown ID raises TaskNotFoundError."""
        with pytest.raises(TaskNotFoundError) as exc_info:
            repo.update_task(999, "Nope")
        assert exc_info.value.task_id == 999

    def test_delete_task(self, repo):
        """Test deleting a task."""
        task = repo.add_task("Doomed")

        deleted = repo.delete_task(task.id)

        assert deleted.id == task.id
        assert repo.get_task(task.id) is None
        assert repo.list_tasks() == []

    def test_delete_nonexistent_task(self, repo):
        """Test that deleting an unknown ID raises TaskNotFoundError."""
        with pytest.raises(TaskNotFoundError):
            repo.delete_task(999)

    @pytest.mark.parametrize("status", list(Status))
    def test_set_status_from_any_status(self, repo, status):
        """Test that every status is reachable from every other."""
        task = repo.add_task("Task")
        for start in Status:
            repo.set_status(task.id, start)
            assert repo.set_status(task.id, status).status == status

    def test_set_status_refreshes_updated_at(self, repo):
        """Test that a status change refreshes updated_at only."""
        task = repo.add_task("Task")

        changed = repo.set_status(task.id, Status.DONE)

        assert changed.status == Status.DONE
        assert changed.created_at == task.created_at
        assert changed.updated_at > task.updated_at

    def test_set_status_nonexistent_task(self, repo):
        """Test that changing status of an unknown ID raises TaskNotFoundError."""
        with pytest.raises(TaskNotFoundError):
            repo.set_status(999, Status.DONE)

    @pytest.mark.parametrize(
        "operation",
        [
            lambda repo: repo.update_task(42, "x"),
            lambda repo: repo.delete_task(42),
            lambda repo: repo.set_status(42, Status.DONE),
        ],
        ids=["update", "delete", "set_status"],
    )
    def test_not_found_leaves_store_byte_identical(self, repo, storage, operation):
        """Test that a NotFound operation never rewrites the store."""
        repo.add_task("A")
        repo.add_task("B")
        before = storage.file_path.read_bytes()
        mtime = storage.file_path.stat().st_mtime_ns

        with pytest.raises(TaskNotFoundError):
            operation(repo)

        assert storage.file_path.read_bytes() == before
        assert storage.file_path.stat().st_mtime_ns == mtime

    def test_not_found_on_empty_store_creates_no_file(self, repo, storage):
        """Test that a NotFound operation on a missing store doesn't create it.

        Only the empty sidecar lock file is left behind.
        """
        with pytest.raises(TaskNotFoundError):
            repo.delete_task(1)
        assert not storage.file_path.exists()
        assert storage.lock_path.exists()
        assert storage.lock_path.read_bytes() == b""
        assert sorted(p.name for p in storage.file_path.parent.iterdir()) == ["tasks.json.lock"]

    def test_updated_at_is_monotonic(self, repo):
        """Test that updated_at never decreases across mutations."""
        task = repo.add_task("Task")
        previous = task.updated_at

        for step in range(5):
            if step % 2:
                task = repo.update_task(task.id, f"Task v{step}")
            else:
                task = repo.set_status(task.id, Status.IN_PROGRESS)
            assert task.updated_at >= task.created_at
            assert task.updated_at >= previous
            previous = task.updated_at

    def test_updated_at_survives_clock_going_backwards(self, storage):
        """Test that a clock behind the stored updated_at doesn't rewind it."""
        repo = TaskRepository(storage, clock=FakeClock(datetime(2024, 6, 1)))
        task = repo.add_task("Task")

        rewound = TaskRepository(storage, clock=FakeClock(datetime(2020, 1, 1)))
        changed = rewound.set_status(task.id, Status.DONE)

        assert changed.updated_at == task.updated_at
        assert changed.updated_at >= changed.created_at

    def test_list_tasks_empty(self, repo):
        """Test list_tasks returns empty list when no tasks exist."""
        assert repo.list_tasks() == []

    @pytest.mark.parametrize("status_filter", [None, "", "all", "ALL"])
    def test_list_all_returns_everything(self, repo, status_filter):
        """Test that 'all', '' and None return the full list unchanged."""
        repo.add_task("A")
        repo.add_task("B")
        repo.set_status(1, Status.DONE)

        assert [t.id for t in repo.list_tasks(status_filter)] == [1, 2]

    def test_list_filters_preserve_order(self, repo):
        """Test that each filter returns matching tasks in stored order."""
        for name in "ABCDE":
            repo.add_task(name)
        repo.set_status(2, Status.DONE)
        repo.set_status(4, Status.DONE)
        repo.set_status(3, Status.IN_PROGRESS)

        assert [t.id for t in repo.list_tasks("todo")] == [1, 5]
        assert [t.id for t in repo.list_tasks("in-progress")] == [3]
        assert [t.id for t in repo.list_tasks("done")] == [2, 4]

    def test_list_filter_is_case_insensitive(self, repo):
        repo.add_task("A")
        assert [t.id for t in repo.list_tasks("TODO")] == [1]

    def test_list_invalid_filter(self, repo):
        """Test that an unknown filter is rejected, not treated as 'all'."""
        repo.add_task("A")

        with pytest.raises(InvalidArgumentError, match="Invalid filter: pending"):
            repo.list_tasks("pending")

    def test_list_does_not_write(self, repo, storage):
        """Test that listing never creates the store."""
        repo.list_tasks()
        assert not storage.file_path.exists()

    def test_get_task_nonexistent(self, repo):
        """Test getting a non-existent task returns None."""
        assert repo.get_task(999) is None

    def test_scenario_add_mark_done_delete(self, repo, storage):
        """Test add -> mark done -> delete on an empty store."""
        task = repo.add_task("Buy milk")
        assert task.id == 1
        assert task.status == Status.TODO
        assert len(storage.load()) == 1

        done = repo.set_status(1, Status.DONE)
        assert done.status == Status.DONE
        assert done.updated_at != task.updated_at
        assert done.created_at == task.created_at

        repo.delete_task(1)
        assert storage.load() == []

    def test_scenario_filters_follow_status(self, repo):
        """Test that filters track a status change."""
        assert repo.add_task("A").id == 1
        assert repo.add_task("B").id == 2
        assert [t.id for t in repo.list_tasks("todo")] == [1, 2]

        repo.set_status(1, Status.IN_PROGRESS)

        assert [t.id for t in repo.list_tasks("todo")] == [2]
        assert [t.id for t in repo.list_tasks("in-progress")] == [1]


class TestHelpers:
    """Tests for module-level helpers."""

    def test_next_task_id_empty(self):
        assert next_task_id([]) == 1

    def test_next_task_id(self):
        tasks = [Task(id=2, description="a"), Task(id=9, description="b"), Task(id=4, description="c")]
        assert next_task_id(tasks) == 10

    @pytest.mark.parametrize(
        "name, expected",
        [
            (None, None),
            ("", None),
            ("all", None),
            ("todo", Status.TODO),
            ("In-Progress", Status.IN_PROGRESS),
            (" done ", Status.DONE),
        ],
    )
    def test_resolve_filter(self, name, expected):
        assert resolve_filter(name) is expected

    def test_resolve_filter_unknown(self):
        with pytest.raises(InvalidArgumentError):
            resolve_filter("in_progress")
