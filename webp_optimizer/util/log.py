"""ロギング設定とジョブサマリ。ジョブの最後に必ず job_summary を1行出す。"""
import logging
import sys

# DEBUG 時に大量に出るため INFO 以上にしておくライブラリ
_NOISY_LOGGERS = ("urllib3", "PIL")


def setup_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))


def format_bytes(n: int) -> str:
    """1536 → '1.5 KB'。負数（WebP の方が大きい）もそのまま表示する。"""
    size = float(n)
    for unit in ("B", "KB", "MB"):
        if abs(size) < 1024 or unit == "MB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} MB"


def log_job_summary(
    logger: logging.Logger,
    job_id: str,
    status: str,
    total_images: int,
    processed_count: int,
    skipped_count: int,
    error_count: int,
    total_saved: int,
    notes: str = "",
) -> None:
    logger.info(
        "job_summary job_id=%s status=%s total=%s processed=%s skipped=%s errors=%s saved_bytes=%s (%s) notes=%s",
        job_id,
        status,
        total_images,
        processed_count,
        skipped_count,
        error_count,
        total_saved,
        format_bytes(total_saved),
        notes or "(none)",
    )
