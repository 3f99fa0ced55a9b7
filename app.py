#!/usr/bin/env python3
"""Salon Vault - 门店后台入口

启动门店后台，提供：
1. 本地数据库（首次启动从表格镜像拉取一次）
2. 通知巡检（库存预警、会员到期提醒）
3. Web 管理接口

使用方式：
    python app.py

    # 指定端口
    python app.py --port 8080

    # 指定数据库
    python app.py --db sqlite:///data/salon.db

环境变量（在 .env 文件中配置，运行 python scripts/setup_env.py 生成）：
    DATABASE_URL              本地数据库连接地址
    MIRROR_SCRIPT_URL         表格镜像脚本地址（留空离线运行）
    ASSISTANT_API_KEY         AI 助手 API Key
    WEB_PORT                  Web 端口（默认 8080）
    WEB_USERNAME              登录用户名（默认 admin）
    WEB_PASSWORD              登录密码（默认 admin123）
    NOTIFICATION_POLL_SECONDS 通知巡检间隔（默认 5 秒）
"""
import argparse
import asyncio
import signal

from loguru import logger

from config.settings import settings


async def _cleanup(web, scheduler, db):
    """统一资源清理：Web 服务器 → 调度器 → 数据库连接"""
    logger.info("正在清理资源...")

    if web is not None:
        try:
            await web.shutdown()
        except Exception as e:
            logger.warning(f"停止 Web 服务器时出错: {e}")

    if scheduler is not None:
        try:
            scheduler.stop()
        except Exception as e:
            logger.warning(f"停止调度器时出错: {e}")

    if db is not None:
        try:
            db.close()
        except Exception as e:
            logger.warning(f"关闭数据库连接时出错: {e}")

    logger.info("服务已停止")


async def main():
    parser = argparse.ArgumentParser(description="Salon Vault 门店后台")
    parser.add_argument("--host", default=settings.web_host,
                        help="监听地址 (默认: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=settings.web_port,
                        help="监听端口 (默认: 8080)")
    parser.add_argument("--db", default=None,
                        help="数据库连接 URL")
    parser.add_argument("--username", default=settings.web_username,
                        help="登录用户名")
    parser.add_argument("--password", default=settings.web_password,
                        help="登录密码")
    parser.add_argument("--no-sync", action="store_true",
                        help="启动时不从表格镜像拉取")
    args = parser.parse_args()

    web = None
    scheduler = None
    db = None

    try:
        from database import SalonDatabase
        db = SalonDatabase(args.db)
        logger.info(f"数据库已连接: {db.database_url}")

        if not args.no_sync:
            result = await asyncio.to_thread(db.sync.pull_once)
            logger.info(f"启动同步: {result.message}")

        from business import NotificationCenter
        from business.scheduler import Scheduler, register_salon_tasks

        scheduler = Scheduler()
        register_salon_tasks(
            scheduler,
            NotificationCenter(db).run_system_checks,
            settings.notification_poll_seconds,
        )
        scheduler.start()

        from interface import WebServer
        web = WebServer(
            db,
            host=args.host,
            port=args.port,
            username=args.username,
            password=args.password,
        )
        await web.startup()

        print()
        print("=" * 60)
        print("  Salon Vault 已启动!")
        print(f"  访问地址: http://localhost:{args.port}")
        print(f"  用户名: {args.username}")
        print(f"  数据库: {db.database_url}")
        print(f"  表格镜像: {'已配置' if db.mirror.is_configured() else '未配置（离线运行）'}")
        print("=" * 60)
        print("  按 Ctrl+C 停止服务")
        print()

        loop = asyncio.get_running_loop()
        shutdown_event = asyncio.Event()
        _shutdown_requested = False

        def signal_handler(signum):
            """处理退出信号"""
            nonlocal _shutdown_requested
            if _shutdown_requested:
                logger.warning("再次收到退出信号，强制退出...")
                for task in asyncio.all_tasks(loop):
                    task.cancel()
                return
            _shutdown_requested = True
            logger.info(f"收到信号 {signum}，正在关闭服务...")
            shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler, sig)

        await shutdown_event.wait()

    except asyncio.CancelledError:
        logger.info("任务被取消，正在清理...")
    except KeyboardInterrupt:
        logger.info("收到键盘中断信号")
    finally:
        await _cleanup(web, scheduler, db)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        pass
    finally:
        print("\n已停止。")
