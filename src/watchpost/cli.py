"""Watchpost CLI

コマンドラインインターフェース。
"""

import argparse
import asyncio
import logging
import sys


def main():
    """メインエントリーポイント"""
    parser = argparse.ArgumentParser(
        description="Watchpost - コミュニティ安全アラート",
        prog="watchpost",
    )

    subparsers = parser.add_subparsers(dest="command", help="利用可能なコマンド")

    # server コマンド
    server_parser = subparsers.add_parser("server", help="APIサーバーを起動")
    server_parser.add_argument("--host", default=None, help="バインドするホスト")
    server_parser.add_argument("--port", type=int, default=None, help="ポート番号")
    server_parser.add_argument("--reload", action="store_true", help="ホットリロードを有効化")

    # submit コマンド
    submit_parser = subparsers.add_parser("submit", help="アラートを投稿")
    submit_parser.add_argument("--title", required=True, help="タイトル")
    submit_parser.add_argument("--description", required=True, help="説明")
    submit_parser.add_argument("--location", required=True, help="場所")
    submit_parser.add_argument(
        "--type",
        default="Other",
        choices=["Physical", "Cyber", "Environmental", "Other"],
        help="種別",
    )
    submit_parser.add_argument(
        "--severity",
        default="Low",
        choices=["Low", "Medium", "High", "Critical"],
        help="深刻度（High以上でSMS通知）",
    )
    submit_parser.add_argument("--reporter", required=True, help="投稿者ID")

    # list コマンド
    list_parser = subparsers.add_parser("list", help="アラート一覧を表示")
    list_parser.add_argument("--limit", type=int, default=None, help="表示件数")

    # watch コマンド
    subparsers.add_parser("watch", help="アラート一覧の変化を監視")

    # config-check コマンド
    subparsers.add_parser("config-check", help="設定の不足を確認")

    args = parser.parse_args()

    if args.command is not None:
        _configure_logging()

    if args.command == "server":
        run_server(args)
    elif args.command == "submit":
        run_submit(args)
    elif args.command == "list":
        run_list(args)
    elif args.command == "watch":
        run_watch(args)
    elif args.command == "config-check":
        run_config_check(args)
    else:
        parser.print_help()
        sys.exit(1)


def _configure_logging() -> None:
    """設定のログレベルでロギングを初期化"""
    from .core import get_settings

    logging.basicConfig(
        level=get_settings().logging.level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_server(args):
    """APIサーバーを起動"""
    import uvicorn

    from .core import get_settings

    settings = get_settings()
    uvicorn.run(
        "watchpost.api:app",
        host=args.host or settings.server.host,
        port=args.port or settings.server.port,
        reload=args.reload,
    )


def run_submit(args):
    """アラートを投稿"""

    async def _submit() -> int:
        from .core import SubmissionError, get_settings
        from .resources import build_resources

        resources = build_resources(get_settings())
        try:
            alert = await resources.coordinator.submit(
                {
                    "title": args.title,
                    "description": args.description,
                    "location": args.location,
                    "type": args.type,
                    "severity": args.severity,
                    "reporter_id": args.reporter,
                }
            )
        except SubmissionError as e:
            print(f"❌ エラー: {e}")
            if e.details:
                for field_name, reason in dict(e.details).items():
                    print(f"  {field_name}: {reason}")
            return 1
        finally:
            # 通知の完了を待ってから終了
            await resources.close()

        print(f"✓ アラートを投稿しました: {alert.id}")
        return 0

    code = asyncio.run(_submit())
    if code:
        sys.exit(code)


def _print_alert(alert) -> None:
    print(f"[{alert.created_at.isoformat()}] {alert.severity} / {alert.type}: {alert.title}")
    print(f"  場所: {alert.location}")
    print(f"  説明: {alert.description}")


def run_list(args):
    """アラート一覧を表示"""

    async def _list() -> int:
        from .core import StoreUnavailableError, get_settings, sort_alerts
        from .store import JsonlAlertStore

        settings = get_settings()
        store = JsonlAlertStore(settings.get_vault_path(), app_id=settings.app.app_id)
        try:
            alerts = sort_alerts(await store.list_all())
        except StoreUnavailableError as e:
            print(f"❌ エラー: {e}")
            return 1

        if not alerts:
            print("アラートはありません。")
            return 0

        for alert in alerts[: args.limit]:
            _print_alert(alert)
        return 0

    code = asyncio.run(_list())
    if code:
        sys.exit(code)


def run_watch(args):
    """アラート一覧の変化を監視（Ctrl+Cで終了）"""

    async def _watch():
        from .core import get_settings
        from .feed import AlertSnapshot
        from .resources import build_resources

        resources = build_resources(get_settings())
        feed = resources.new_feed()
        try:
            async with feed:
                async with feed.subscribe() as subscription:
                    async for event in subscription:
                        print("-" * 50)
                        if isinstance(event, AlertSnapshot):
                            print(f"📋 {len(event.alerts)} 件 (#{event.sequence})")
                            for alert in event.alerts:
                                _print_alert(alert)
                        else:
                            print(f"⚠ 取得に失敗しました: {event.error}")
        finally:
            await resources.close()

    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        print("\n監視を終了しました。")


def run_config_check(args):
    """設定の不足を確認"""
    from .core import get_settings

    settings = get_settings()
    problems = settings.diagnostics()

    print(f"Vault: {settings.get_vault_path()}")
    print(f"App ID: {settings.app.app_id}")

    if not problems:
        print("✓ 設定に不足はありません。")
        return

    for problem in problems:
        print(f"⚠ {problem}")
    sys.exit(1)


if __name__ == "__main__":
    main()
