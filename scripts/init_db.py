"""初始化本地数据库"""
import sys
import os

# 添加项目根目录到路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import SalonDatabase
from database.schemas import generate_id
from config.business_config import business_config
from loguru import logger


def init_database(database_url=None):
    """创建存储表并写入默认服务分类（已有分类时跳过）"""
    logger.info("Initializing database...")

    db = SalonDatabase(database_url, push_in_background=False)
    db.create_tables()

    existing = {c.get("name") for c in db.categories.get_all()}
    seeds = [
        {"id": generate_id(), **category}
        for category in business_config.get_default_categories()
        if category["name"] not in existing
    ]
    if seeds:
        db.categories.save(db.categories.get_all() + seeds)
        for category in seeds:
            logger.info(f"Created category: {category['name']}")

    logger.info("Database initialization completed!")
    db.close()
    return len(seeds)


if __name__ == "__main__":
    init_database()
