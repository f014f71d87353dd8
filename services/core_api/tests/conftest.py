import os

os.environ['DATABASE_URL'] = 'sqlite:///./test_spa_manager.db'
os.environ['SPA_API_MODE'] = 'mock'
os.environ['CACHE_ENABLED'] = 'false'
os.environ['SPA_PROFILE'] = 'false'

from spa_manager.config import get_settings

get_settings.cache_clear()

from spa_manager.db import Base, engine, init_db


def pytest_sessionstart(session):
    Base.metadata.drop_all(bind=engine)
    init_db()
