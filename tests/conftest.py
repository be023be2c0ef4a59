from config.structlog_config import configure_logging


def pytest_configure(config):
    configure_logging(level="WARNING", json_logs=False)
