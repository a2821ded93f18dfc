from shopsync.config import Settings
from shopsync.utils.logger import setup_logger


def test_sync_lines_get_their_own_log(tmp_path):
    try:
        logger = setup_logger(Settings(log_dir=str(tmp_path)))
        logger.info("request served")
        logger.bind(tenant="owner@example.com", sync=True).info("Syncing customers")
    finally:
        # Back to console only; removing sinks closes the files
        setup_logger()

    sync_log = next(tmp_path.glob("sync_*.log")).read_text()
    app_log = next(tmp_path.glob("shopsync_*.log")).read_text()

    assert "Syncing customers" in sync_log
    assert "owner@example.com" in sync_log
    assert "request served" not in sync_log
    assert "request served" in app_log
    assert " | - | " in app_log
