#!/usr/bin/env python3
"""交互式生成 .env 配置文件

使用方式：
    python scripts/setup_env.py

会引导用户填写配置项，生成 .env 文件。
"""
import os

# 项目根目录
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
ENV_FILE = os.path.join(PROJECT_ROOT, ".env")


# 配置项定义：(env_key, 描述, 默认值, 是否必填)
CONFIG_ITEMS = [
    # === 本地存储 ===
    ("DATABASE_URL", "本地数据库连接地址", "sqlite:///data/salon.db", False),
    ("STORAGE_KEY_VERSION", "存储键版本号", "v6", False),
    ("TIMEZONE", "门店时区", "Asia/Kolkata", False),

    # === 表格镜像 ===
    ("MIRROR_SCRIPT_URL", "Google Apps Script Web App 地址（留空则离线运行）", "", False),
    ("MIRROR_VIEW_URL", "Google 表格查看地址", "", False),

    # === AI 助手 ===
    ("ASSISTANT_API_KEY", "AI 助手 API Key（留空则禁用助手）", "", False),
    ("ASSISTANT_MODEL", "AI 助手模型名称", "gemini-2.5-flash", False),
    ("ASSISTANT_BASE_URL", "OpenAI 兼容接口地址", "https://generativelanguage.googleapis.com/v1beta/openai/", False),

    # === Web 平台 ===
    ("WEB_HOST", "Web 监听地址", "0.0.0.0", False),
    ("WEB_PORT", "Web 监听端口", "8080", False),
    ("WEB_USERNAME", "Web 登录用户名", "admin", True),
    ("WEB_PASSWORD", "Web 登录密码", "admin123", True),

    # === 通知 ===
    ("NOTIFICATION_POLL_SECONDS", "通知巡检间隔（秒）", "5", False),
    ("MEMBERSHIP_ALERT_DAYS", "会员到期提前提醒天数", "7", False),
]

SECTION_NAMES = {
    "DATABASE": "# === 本地存储配置 ===",
    "STORAGE": "# === 本地存储配置 ===",
    "TIMEZONE": "# === 本地存储配置 ===",
    "MIRROR": "# === 表格镜像配置 ===",
    "ASSISTANT": "# === AI 助手配置 ===",
    "WEB": "# === Web 平台配置 ===",
    "NOTIFICATION": "# === 通知配置 ===",
    "MEMBERSHIP": "# === 通知配置 ===",
}


def render_env(values):
    """按分组渲染 .env 内容

    Args:
        values: {env_key: value}
    """
    env_lines = [
        "# Salon Vault 配置文件",
        "# 由 scripts/setup_env.py 自动生成",
    ]
    for key, _, default, _ in CONFIG_ITEMS:
        header = SECTION_NAMES.get(key.split("_")[0], "# === 其他配置 ===")
        if header not in env_lines:
            env_lines.append("")
            env_lines.append(header)
        env_lines.append(f"{key}={values.get(key, default)}")
    return "\n".join(env_lines) + "\n"


def main():
    print()
    print("=" * 60)
    print("  Salon Vault 配置向导")
    print("  生成 .env 配置文件")
    print("=" * 60)
    print()

    if os.path.exists(ENV_FILE):
        print(f"⚠️  检测到已有 .env 文件: {ENV_FILE}")
        choice = input("是否覆盖？(y/N): ").strip().lower()
        if choice != "y":
            print("已取消。")
            return
        print()

    values = {}
    for key, desc, default, required in CONFIG_ITEMS:
        req_tag = " [必填]" if required else ""
        default_hint = f" (默认: {default})" if default else ""
        print(f"📝 {desc}{req_tag}")

        while True:
            value = input(f"  {key}={default_hint}: ").strip()
            if not value:
                value = default
            if required and not value:
                print(f"  ❌ {key} 是必填项，请输入值。")
                continue
            break

        values[key] = value
        print()

    with open(ENV_FILE, "w", encoding="utf-8") as f:
        f.write(render_env(values))

    print("=" * 60)
    print(f"  ✅ 配置文件已生成: {ENV_FILE}")
    print()
    print("  初始化数据：")
    print("    python scripts/init_db.py")
    print("  启动应用：")
    print("    python app.py")
    print("=" * 60)


if __name__ == "__main__":
    main()
