from __future__ import annotations

import os

from flask import Blueprint, current_app, send_file

from services.storage import LocalBlobStore
from utils import ApiError

files_bp = Blueprint("files", __name__)


@files_bp.get("/files/<bucket>/<path:object_path>")
def get_file(bucket: str, object_path: str):
    store = current_app.extensions["hiring_service"].blob_store
    if not isinstance(store, LocalBlobStore):
        raise ApiError("NOT_FOUND", "File serving is disabled", http_status=404)

    target = store.local_path(bucket, object_path)
    if not os.path.isfile(target):
        raise ApiError("NOT_FOUND", "File not found", http_status=404)
    return send_file(target, download_name=os.path.basename(target), conditional=True)
