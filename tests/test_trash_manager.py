from datetime import datetime, timedelta, timezone

import pytest

from drivecore.core.exceptions import NotFoundError
from drivecore.models.file import File
from drivecore.models.file_version import FileVersion
from drivecore.models.folder import Folder
from drivecore.services.change_notifier import folder_room
from drivecore.services.trash_manager import (
    empty_trash,
    list_trash,
    permanent_delete,
    restore,
    scheduled_purge,
    soft_delete,
)
from drivecore.utils.folder_utils import get_folder, list_files, list_folders


def _days_ago(days):
    return datetime.now(timezone.utc) - timedelta(days=days)


class TestSoftDeleteAndRestore:
    def test_trashed_item_leaves_listings_and_enters_trash(self, db_session, notifier, actor, make_file):
        file = make_file("a.txt")

        soft_delete(db_session, notifier, actor, file.id, "file")

        assert list_files(db_session, actor.id, None) == []
        assert [item.id for item in list_trash(db_session, actor.id, "file")] == [file.id]

    def test_restore_round_trip(self, db_session, notifier, recorder, actor, make_folder):
        folder = make_folder("Docs")
        before = (folder.name, folder.parent_id, folder.updated_at, folder.is_starred)
        notifier.subscribe(folder_room(actor.id, None), recorder)

        soft_delete(db_session, notifier, actor, folder.id, "folder")
        restored = restore(db_session, notifier, actor, folder.id, "folder")

        assert restored.deleted_at is None
        assert (restored.name, restored.parent_id, restored.updated_at, restored.is_starred) == before
        assert [item.id for item in list_folders(db_session, actor.id, None)] == [folder.id]
        assert recorder.names == ["folder:trashed", "folder:restored"]

    def test_restore_keeps_name_even_if_sibling_now_uses_it(self, db_session, notifier, actor, make_file):
        original = make_file("a.txt")
        soft_delete(db_session, notifier, actor, original.id, "file")
        make_file("a.txt")

        restored = restore(db_session, notifier, actor, original.id, "file")

        assert restored.name == "a.txt"
        assert len(list_files(db_session, actor.id, None)) == 2

    def test_restore_live_item_is_not_found(self, db_session, notifier, actor, make_file):
        file = make_file("a.txt")

        with pytest.raises(NotFoundError):
            restore(db_session, notifier, actor, file.id, "file")

    def test_trashing_again_refreshes_timestamp(self, db_session, notifier, actor, make_file):
        file = make_file("a.txt", deleted_at=_days_ago(20))
        before = file.deleted_at

        again = soft_delete(db_session, notifier, actor, file.id, "file")

        assert again.deleted_at > before

    def test_children_of_trashed_folder_stay_live(self, db_session, notifier, actor, make_folder, make_file):
        parent = make_folder("Parent")
        child = make_file("child.txt", folder=parent)

        soft_delete(db_session, notifier, actor, parent.id, "folder")

        db_session.expire_all()
        assert db_session.get(File, child.id).deleted_at is None


class TestPermanentDelete:
    def test_deletes_row_versions_and_blobs(self, db_session, blob_store, notifier, actor, make_file):
        file = make_file("a.txt", deleted_at=_days_ago(1))
        old_ref = blob_store.put("old-version", b"old")
        db_session.add(FileVersion(file_id=file.id, name="a.txt", size=3, mime_type="text/plain", blob_ref=old_ref))
        db_session.commit()
        file_id, current_ref = file.id, file.blob_ref

        deleted = permanent_delete(db_session, blob_store, notifier, actor, file_id, "file")

        assert deleted["id"] == file_id
        assert deleted["name"] == "a.txt"
        assert db_session.query(File).filter(File.id == file_id).count() == 0
        assert db_session.query(FileVersion).count() == 0
        assert not blob_store.exists(current_ref)
        assert not blob_store.exists(old_ref)

    def test_blob_failure_still_deletes_metadata(self, db_session, blob_store, notifier, actor, make_file):
        file = make_file("a.txt", deleted_at=_days_ago(1))
        file_id, ref = file.id, file.blob_ref
        blob_store.fail_delete = True

        permanent_delete(db_session, blob_store, notifier, actor, file_id, "file")

        assert db_session.query(File).filter(File.id == file_id).count() == 0
        assert blob_store.exists(ref) is True

    def test_live_item_cannot_be_destroyed(self, db_session, blob_store, notifier, actor, make_file):
        file = make_file("a.txt")

        with pytest.raises(NotFoundError):
            permanent_delete(db_session, blob_store, notifier, actor, file.id, "file")

    def test_folder_purge_orphans_children(self, db_session, blob_store, notifier, actor, make_folder, make_file):
        parent = make_folder("Parent", deleted_at=_days_ago(1))
        sub = make_folder("Sub", parent=parent)
        child = make_file("child.txt", folder=parent)
        parent_id = parent.id

        permanent_delete(db_session, blob_store, notifier, actor, parent_id, "folder")

        assert get_folder(db_session, parent_id, include_deleted=True) is None
        assert db_session.get(Folder, sub.id).parent_id == parent_id
        assert db_session.get(File, child.id).folder_id == parent_id


class TestEmptyTrash:
    def test_empties_regardless_of_age(self, db_session, blob_store, notifier, recorder, actor, make_folder, make_file):
        make_folder("Old", deleted_at=_days_ago(40))
        make_file("new.txt", deleted_at=_days_ago(0))
        make_file("live.txt")
        notifier.subscribe(folder_room(actor.id, None), recorder)

        count = empty_trash(db_session, blob_store, notifier, actor)

        assert count == 2
        assert list_trash(db_session, actor.id, "folder") == []
        assert list_trash(db_session, actor.id, "file") == []
        assert [f.name for f in list_files(db_session, actor.id, None)] == ["live.txt"]
        assert recorder.names == ["trash:emptied"]

    def test_limited_to_item_type_and_owner(
        self, db_session, blob_store, notifier, actor, other_actor, make_folder, make_file
    ):
        make_folder("Trashed", deleted_at=_days_ago(1))
        make_file("trashed.txt", deleted_at=_days_ago(1))
        make_file("theirs.txt", owner_id=other_actor.id, deleted_at=_days_ago(1))

        count = empty_trash(db_session, blob_store, notifier, actor, "file")

        assert count == 1
        assert len(list_trash(db_session, actor.id, "folder")) == 1
        assert len(list_trash(db_session, other_actor.id, "file")) == 1


class TestScheduledPurge:
    def test_only_items_past_retention_are_purged(self, db_session, blob_store, actor, other_actor, make_file):
        old = make_file("old.txt", deleted_at=_days_ago(31))
        theirs = make_file("theirs.txt", owner_id=other_actor.id, deleted_at=_days_ago(31))
        recent = make_file("recent.txt", deleted_at=_days_ago(29))
        expected = sorted([old.id, theirs.id])

        report = scheduled_purge(db_session, blob_store, retention_days=30)

        assert sorted(report.files) == expected
        assert report.failed == 0
        assert [f.id for f in list_trash(db_session, actor.id, "file")] == [recent.id]

    def test_explicit_now(self, db_session, blob_store, make_folder):
        folder_id = make_folder("Old", deleted_at=datetime(2024, 1, 1, tzinfo=timezone.utc)).id

        report = scheduled_purge(
            db_session, blob_store, now=datetime(2024, 2, 15, tzinfo=timezone.utc), retention_days=30
        )

        assert report.folders == [folder_id]
        assert report.count == 1

    def test_dry_run_deletes_nothing(self, db_session, blob_store, actor, make_file):
        old = make_file("old.txt", deleted_at=_days_ago(31))

        report = scheduled_purge(db_session, blob_store, retention_days=30, dry_run=True)

        assert report.dry_run is True
        assert report.files == [old.id]
        assert len(list_trash(db_session, actor.id, "file")) == 1
        assert blob_store.exists(old.blob_ref)

    def test_blob_failures_do_not_stop_the_sweep(self, db_session, blob_store, make_file):
        make_file("one.txt", deleted_at=_days_ago(40))
        make_file("two.txt", deleted_at=_days_ago(35))
        blob_store.fail_delete = True

        report = scheduled_purge(db_session, blob_store, retention_days=30)

        assert len(report.files) == 2
        assert report.failed == 0
        assert report.blob_failures == 2
        assert db_session.query(File).count() == 0

    def test_live_items_are_never_purged(self, db_session, blob_store, make_file):
        make_file("live.txt")

        report = scheduled_purge(db_session, blob_store, retention_days=0)

        assert report.count == 0
        assert db_session.query(File).count() == 1
