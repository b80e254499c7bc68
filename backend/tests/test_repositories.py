from __future__ import annotations

from uuid import UUID, uuid4

import pytest
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.db.enums import TaskStatus
from app.db.models import Project, Task
from app.db.repositories import (
    Pagination,
    ProjectRepository,
    StaleTaskStateError,
    TaskFilters,
    TaskRepository,
)


def _create_project(session: Session, user_id: UUID | None = None) -> Project:
    return ProjectRepository(session).create(
        Project(user_id=user_id or uuid4(), name="Repository Project")
    )


def _create_task(
    repo: TaskRepository,
    project: Project,
    *,
    position: int,
    parent_id: UUID | None = None,
    status: TaskStatus = TaskStatus.TODO,
    is_delegated: bool = False,
) -> Task:
    return repo.insert(
        Task(
            project_id=project.id,
            parent_id=parent_id,
            title=f"Task {position}",
            status_id=status.value,
            position=position,
            is_delegated=is_delegated,
        )
    )


def test_list_scopes_by_parent_and_orders_by_position(db_session: Session) -> None:
    repo = TaskRepository(db_session)
    project = _create_project(db_session)
    second = _create_task(repo, project, position=2)
    first = _create_task(repo, project, position=1, is_delegated=True)
    _create_task(repo, project, position=1, parent_id=first.id)

    page = repo.list(
        filters=TaskFilters(project_id=project.id),
        pagination=Pagination(page=1, page_size=10),
    )
    delegated = repo.list(
        filters=TaskFilters(project_id=project.id, is_delegated=True),
        pagination=Pagination(page=1, page_size=10),
    )
    children = repo.list(
        filters=TaskFilters(project_id=project.id, parent_id=first.id),
        pagination=Pagination(page=1, page_size=10),
    )

    assert [task.id for task in page.items] == [first.id, second.id]
    assert page.total == 2
    assert [task.id for task in delegated.items] == [first.id]
    assert children.total == 1
    assert children.items[0].parent_id == first.id


def test_pagination_window_and_total_pages(db_session: Session) -> None:
    repo = TaskRepository(db_session)
    project = _create_project(db_session)
    for position in range(1, 6):
        _create_task(repo, project, position=position)

    page = repo.list(
        filters=TaskFilters(project_id=project.id),
        pagination=Pagination(page=2, page_size=2),
    )

    assert [task.position for task in page.items] == [3, 4]
    assert page.total == 5
    assert page.total_pages == 3


def test_pagination_rejects_non_positive_values() -> None:
    with pytest.raises(ValueError):
        Pagination(page=0, page_size=10)
    with pytest.raises(ValueError):
        Pagination(page=1, page_size=0)


def test_max_position_is_per_sibling_group(db_session: Session) -> None:
    repo = TaskRepository(db_session)
    project = _create_project(db_session)
    parent = _create_task(repo, project, position=4)
    _create_task(repo, project, position=9, parent_id=parent.id)

    assert repo.max_position(project_id=project.id, parent_id=None) == 4
    assert repo.max_position(project_id=project.id, parent_id=parent.id) == 9
    assert repo.max_position(project_id=uuid4(), parent_id=None) is None


def test_sibling_position_is_unique_including_top_level(db_session: Session) -> None:
    repo = TaskRepository(db_session)
    project = _create_project(db_session)
    parent = _create_task(repo, project, position=1)
    _create_task(repo, project, position=1, parent_id=parent.id)

    with pytest.raises(IntegrityError):
        _create_task(repo, project, position=1)
    with pytest.raises(IntegrityError):
        _create_task(repo, project, position=1, parent_id=parent.id)

    # the failed inserts left the session usable
    assert _create_task(repo, project, position=2).position == 2


def test_propose_stores_status_and_comment_atomically(db_session: Session) -> None:
    repo = TaskRepository(db_session)
    project = _create_project(db_session)
    task = _create_task(repo, project, position=1, is_delegated=True)

    updated = repo.propose_task_status(
        task_id=task.id,
        new_status_id=TaskStatus.DONE_PENDING_ACCEPTANCE.value,
        comment_text="Finished the draft.",
        author_is_ai=True,
    )

    assert updated is not None
    assert updated.status_id == TaskStatus.DONE_PENDING_ACCEPTANCE
    assert updated.status_before_proposal == TaskStatus.TODO
    comments = repo.list_comments(task.id)
    assert [(comment.comment, comment.author_is_ai) for comment in comments] == [
        ("Finished the draft.", True)
    ]


def test_repeated_proposal_keeps_original_previous_status(db_session: Session) -> None:
    repo = TaskRepository(db_session)
    project = _create_project(db_session)
    task = _create_task(repo, project, position=1, status=TaskStatus.CANCELED)

    repo.propose_task_status(
        task_id=task.id,
        new_status_id=TaskStatus.DONE_PENDING_ACCEPTANCE.value,
        comment_text="Done after all.",
        author_is_ai=True,
    )
    updated = repo.propose_task_status(
        task_id=task.id,
        new_status_id=TaskStatus.CANCELED_PENDING_CONFIRMATION.value,
        comment_text="Actually not needed.",
        author_is_ai=True,
    )

    assert updated is not None
    assert updated.status_id == TaskStatus.CANCELED_PENDING_CONFIRMATION
    assert updated.status_before_proposal == TaskStatus.CANCELED
    assert len(repo.list_comments(task.id)) == 2


def test_propose_and_reject_return_none_for_missing_task(db_session: Session) -> None:
    repo = TaskRepository(db_session)

    assert (
        repo.propose_task_status(
            task_id=uuid4(),
            new_status_id=TaskStatus.DONE_PENDING_ACCEPTANCE.value,
            comment_text="Nothing here.",
            author_is_ai=True,
        )
        is None
    )
    assert repo.reject_task_proposal(task_id=uuid4(), comment_text="Nothing here.") is None


def test_reject_restores_previous_status_with_human_comment(db_session: Session) -> None:
    repo = TaskRepository(db_session)
    project = _create_project(db_session)
    task = _create_task(repo, project, position=1)
    repo.propose_task_status(
        task_id=task.id,
        new_status_id=TaskStatus.DONE_PENDING_ACCEPTANCE.value,
        comment_text="Done.",
        author_is_ai=True,
    )

    updated = repo.reject_task_proposal(task_id=task.id, comment_text="Tests are missing.")

    assert updated is not None
    assert updated.status_id == TaskStatus.TODO
    assert updated.status_before_proposal is None
    comments = repo.list_comments(task.id)
    assert [comment.author_is_ai for comment in comments] == [True, False]


def test_set_status_requires_the_expected_stored_status(db_session: Session) -> None:
    repo = TaskRepository(db_session)
    project = _create_project(db_session)
    task = _create_task(repo, project, position=1, status=TaskStatus.DONE_PENDING_ACCEPTANCE)

    with pytest.raises(StaleTaskStateError):
        repo.set_status(
            task,
            TaskStatus.DONE,
            expected_status_id=TaskStatus.CANCELED_PENDING_CONFIRMATION.value,
        )
    unchanged = repo.get(task.id)
    assert unchanged is not None
    assert unchanged.status_id == TaskStatus.DONE_PENDING_ACCEPTANCE

    updated = repo.set_status(
        task,
        TaskStatus.DONE,
        expected_status_id=TaskStatus.DONE_PENDING_ACCEPTANCE.value,
    )
    assert updated.status_id == TaskStatus.DONE
    assert updated.status_before_proposal is None


def test_reject_without_pending_status_is_stale_and_writes_nothing(db_session: Session) -> None:
    repo = TaskRepository(db_session)
    project = _create_project(db_session)
    task = _create_task(repo, project, position=1, status=TaskStatus.DONE)

    with pytest.raises(StaleTaskStateError):
        repo.reject_task_proposal(task_id=task.id, comment_text="Nope.")

    assert repo.list_comments(task.id) == []
    refreshed = repo.get(task.id)
    assert refreshed is not None
    assert refreshed.status_id == TaskStatus.DONE


def test_apply_patch_clears_proposal_bookkeeping_on_status_change(db_session: Session) -> None:
    repo = TaskRepository(db_session)
    project = _create_project(db_session)
    task = _create_task(repo, project, position=1)
    repo.propose_task_status(
        task_id=task.id,
        new_status_id=TaskStatus.DONE_PENDING_ACCEPTANCE.value,
        comment_text="Done.",
        author_is_ai=True,
    )
    task = repo.get(task.id)
    assert task is not None

    updated = repo.apply_patch(task, {"status_id": TaskStatus.CANCELED.value})

    assert updated.status_id == TaskStatus.CANCELED
    assert updated.status_before_proposal is None
    with pytest.raises(ValueError):
        repo.apply_patch(updated, {"position": 4})


def test_reassign_positions_swaps_siblings(db_session: Session) -> None:
    repo = TaskRepository(db_session)
    project = _create_project(db_session)
    first = _create_task(repo, project, position=1)
    second = _create_task(repo, project, position=2)

    repo.reassign_positions([first, second], {first.id: 2, second.id: 1})

    assert repo.get(first.id).position == 2  # type: ignore[union-attr]
    assert repo.get(second.id).position == 1  # type: ignore[union-attr]


def test_reassign_positions_conflict_rolls_back_everything(db_session: Session) -> None:
    repo = TaskRepository(db_session)
    project = _create_project(db_session)
    first = _create_task(repo, project, position=1)
    second = _create_task(repo, project, position=2)
    _create_task(repo, project, position=3)

    with pytest.raises(IntegrityError):
        repo.reassign_positions([first, second], {first.id: 5, second.id: 3})

    db_session.expire_all()
    assert repo.get(first.id).position == 1  # type: ignore[union-attr]
    assert repo.get(second.id).position == 2  # type: ignore[union-attr]


def test_project_lookup_and_key_rotation(db_session: Session) -> None:
    projects = ProjectRepository(db_session)
    owner = uuid4()
    project = _create_project(db_session, owner)
    old_key = project.api_key

    assert projects.get_owned(project.id, owner) is not None
    assert projects.get_owned(project.id, uuid4()) is None
    assert projects.get_by_api_key(old_key) is not None

    rotated = projects.rotate_api_key(project)

    assert rotated.api_key != old_key
    assert projects.get_by_api_key(old_key) is None
    assert projects.get_by_api_key(rotated.api_key) is not None
