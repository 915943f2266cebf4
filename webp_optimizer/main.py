"""
CLI エントリーポイント。最適化・再試行・復元・alt 適用・中止・状態表示・API サーバー起動。
"""
from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("webp_optimizer.main")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Shopify product image WebP optimizer")
    actions = parser.add_mutually_exclusive_group()
    actions.add_argument("--optimize", action="store_true", help="Optimize every product image")
    actions.add_argument("--retry", type=str, metavar="IMAGE_ID", help="Re-process one image (failed or new)")
    actions.add_argument("--revert-all", action="store_true", help="Restore every optimized image to its original")
    actions.add_argument("--revert", type=str, metavar="IMAGE_ID", help="Restore one optimized image")
    actions.add_argument("--restore-missing", action="store_true", help="Re-create originals for reverted images")
    actions.add_argument("--apply-alt-text", action="store_true", help="Apply the alt text template to every image")
    actions.add_argument("--cancel", action="store_true", help="Request cancellation of the running job")
    actions.add_argument("--status", action="store_true", help="Show the latest job and recent images")
    actions.add_argument("--serve", action="store_true", help="Start the read-only HTTP API")
    parser.add_argument(
        "--force",
        action="store_true",
        help="--restore-missing: skip the existing-media check / --cancel: release a stale running job",
    )
    from webp_optimizer.seo.metadata import TEMPLATE_KEYS

    placeholders = " ".join(f"#{k}#" for k in TEMPLATE_KEYS)
    parser.add_argument("--alt-template", type=str, help=f"Save the alt text template ({placeholders})")
    parser.add_argument("--filename-template", type=str, help="Save the file name template")
    parser.add_argument("--auto-apply", choices=["on", "off"], help="Apply templates during optimization")
    parser.add_argument("--dry-run", action="store_true", help="List what would be processed, no writes")
    parser.add_argument("--host", type=str, default="127.0.0.1", help="--serve bind host")
    parser.add_argument("--port", type=int, default=8000, help="--serve bind port")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    from webp_optimizer.util.log import setup_logging

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    settings_changed = any(
        v is not None for v in (args.alt_template, args.filename_template, args.auto_apply)
    )
    has_action = any(
        [
            args.optimize,
            args.retry,
            args.revert_all,
            args.revert,
            args.restore_missing,
            args.apply_alt_text,
            args.cancel,
            args.status,
            args.serve,
        ]
    )
    if not has_action and not settings_changed:
        parser.print_help()
        sys.exit(0)

    if args.serve:
        import uvicorn

        uvicorn.run("webp_optimizer.server:app", host=args.host, port=args.port)
        return

    from webp_optimizer.errors import InvalidTransitionError, JobAlreadyRunningError

    try:
        _dispatch(args, settings_changed)
    except (ValueError, JobAlreadyRunningError, InvalidTransitionError) as e:
        logger.error("%s", e)
        sys.exit(1)


def _dispatch(args: argparse.Namespace, settings_changed: bool) -> None:
    from webp_optimizer.config import load_config
    from webp_optimizer.constants import STATUS_COMPLETED, STATUS_REVERTED
    from webp_optimizer.job import alt_text, revert, runner
    from webp_optimizer.job.params import OptimizeParams
    from webp_optimizer.queries import get_recent_dataframe, get_status_snapshot
    from webp_optimizer.shopify import ShopifyAdmin
    from webp_optimizer.shopify.auth import get_shop_domain
    from webp_optimizer.store import db, repo
    from webp_optimizer.util.log import format_bytes

    config = load_config()
    seo_defaults = config.get("seo", {})
    shop = get_shop_domain()

    conn = db.get_connection()
    db.init_schema(conn)
    try:
        if settings_changed:
            settings = repo.update_settings(
                conn,
                shop,
                alt_text_template=args.alt_template,
                file_name_template=args.filename_template,
                auto_apply_on_optimize=None if args.auto_apply is None else args.auto_apply == "on",
                defaults=seo_defaults,
            )
            logger.info(
                "SEO 設定を保存しました: alt=%r file_name=%r auto_apply=%s",
                settings.alt_text_template,
                settings.file_name_template,
                settings.auto_apply_on_optimize,
            )

        if args.status:
            snapshot = get_status_snapshot(conn, shop)
            if not snapshot["has_job"]:
                print("ジョブの実行履歴はありません。")
                return
            job = snapshot["job"]
            print(
                f"job {job['id']} [{job['status']}] "
                f"{job['processed_count'] + job['skipped_count'] + job['error_count']}/{job['total_images']} "
                f"processed={job['processed_count']} skipped={job['skipped_count']} "
                f"errors={job['error_count']} saved={format_bytes(job['total_saved'])}"
            )
            if job["current_image"]:
                print(f"current: {job['current_image']}")
            print(f"stats: {snapshot['stats']}")
            df = get_recent_dataframe(conn, shop)
            if not df.empty:
                print(df.to_string(index=False))
            return

        if args.cancel:
            if args.force:
                released = repo.abandon_running_job(conn, shop, notes="Released manually (--cancel --force)")
                logger.info("実行中ジョブを解放しました" if released else "実行中のジョブはありません")
            else:
                runner.request_cancel(conn, shop)
            return

        if not (
            args.optimize
            or args.retry
            or args.revert_all
            or args.revert
            or args.restore_missing
            or args.apply_alt_text
        ):
            return

        if args.dry_run and not (args.optimize or args.retry):
            completed = len(repo.list_images_by_status(conn, shop, STATUS_COMPLETED))
            reverted = len(repo.list_images_by_status(conn, shop, STATUS_REVERTED))
            logger.info("[DRY-RUN] completed=%d reverted=%d（Shopify には書き込みません）", completed, reverted)
            return

        params = OptimizeParams.from_config(config)
        client = ShopifyAdmin.from_env(
            api_version=config.get("shopify", {}).get("api_version"),
            products_page_size=params.products_page_size,
            media_page_size=params.media_page_size,
        )
        settings = repo.get_or_create_settings(conn, shop, seo_defaults)

        if args.optimize or args.retry:
            if args.dry_run:
                runner.preview_candidates(conn, client, shop, image_id=args.retry)
                return
            runner.run_optimization(conn, client, shop, params, image_id=args.retry, settings=settings)
        elif args.revert_all:
            revert.revert_all(conn, client, shop)
        elif args.revert:
            revert.revert_single(conn, client, shop, args.revert)
        elif args.restore_missing:
            revert.restore_missing(conn, client, shop, check_existing=not args.force)
        elif args.apply_alt_text:
            alt_text.apply_alt_text(conn, client, shop, settings)
    finally:
        conn.close()


if __name__ == "__main__":
    main()
