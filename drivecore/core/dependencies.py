from fastapi import Request

from drivecore.services.change_notifier import ChangeNotifier
from drivecore.utils.blob_store import BlobStore


def get_notifier(request: Request) -> ChangeNotifier:
    return request.app.state.notifier


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store
