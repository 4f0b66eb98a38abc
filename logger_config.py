import logging
import os


def setup_logging(debug: bool = False, log_dir: str = 'logs'):
    """Configure logging for all modules"""
    # Create logs directory
    os.makedirs(log_dir, exist_ok=True)

    # Set level based on debug flag
    base_level = logging.DEBUG if debug else logging.INFO

    # Clear any existing handlers from the root logger
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    formatter = logging.Formatter('%(asctime)s | %(levelname)s | %(name)s | %(message)s')

    file_handler = logging.FileHandler(os.path.join(log_dir, 'app.log'))
    file_handler.setLevel(base_level)
    file_handler.setFormatter(formatter)

    handlers = [
        file_handler  # Always log to file
    ]

    # Add console handler only in debug mode
    if debug:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(base_level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    # Configure the root logger - this affects ALL loggers
    logging.basicConfig(
        level=base_level,
        handlers=handlers
    )

    # Get named loggers for each module
    loggers = {
        'api': logging.getLogger('api'),
        'main_config': logging.getLogger('main_config'),
        'tenants': logging.getLogger('tenants'),
        'sheets': logging.getLogger('google_sheets_agent'),
        'storage': logging.getLogger('LocalStorageProvider'),
        'cache': logging.getLogger('CacheOperations'),
        'locks': logging.getLogger('refresh_locks'),
        'refresh': logging.getLogger('refresh_service'),
        'data_processor': logging.getLogger('data_processor'),
        'reports': logging.getLogger('reports_service'),
        'demo': logging.getLogger('demo_transform'),
    }

    # Set their levels
    for logger in loggers.values():
        logger.setLevel(base_level)

    return loggers
