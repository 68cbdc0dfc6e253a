"""
Log endpoints
Recent explorer log records (e.g. block-fill decisions and oracle failures)
"""
import io
import json
import os
import zipfile
from typing import Optional

from fastapi import APIRouter, Query, Response

from services.logging_service import get_recent_handler, log_files

router = APIRouter(prefix="/logs", tags=["logs"])


@router.get("/recent")
def get_recent_logs(
    limit: int = Query(500, ge=1, le=5000),
    min_level: Optional[str] = Query(None, description="e.g. WARNING"),
    source: Optional[str] = Query(None, description="Logger prefix, e.g. services.streets"),
):
    return {"logs": get_recent_handler().select(limit, min_level, source)}


@router.get("/summary")
def get_log_summary():
    return get_recent_handler().summary()


@router.get("/download")
def download_logs():
    """explorer.log (with rotated backups) and the buffered records as one zip"""
    recent = get_recent_handler()
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for path in log_files():
            if os.path.isfile(path):
                zf.write(path, arcname=os.path.basename(path))
        zf.writestr("recent_records.json", json.dumps({
            "summary": recent.summary(),
            "logs": recent.select(limit=0),
        }, indent=2))

    headers = {"Content-Disposition": 'attachment; filename="explorer-logs.zip"'}
    return Response(content=buf.getvalue(), media_type="application/zip", headers=headers)
