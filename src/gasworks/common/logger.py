# logger.py
import copy
import logging
import logging.config

from gasworks.util.file_utils import from_json_or_yaml


DEFAULT_LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console_handler": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "level": "DEBUG",
            "stream": "ext://sys.stdout",
        },
    },
    "root": {
        "handlers": ["console_handler"],
        "level": "INFO",
    },
}


def setup_logging(
    config_file_path=None,
    log_file_path=None,
    verbose=False,
):
    """
    Loads logging config from 'config_file_path' (YAML or JSON) and sets up logging.
    Without a config file a console-only configuration is used.
    Optionally add/override a file handler writing to 'log_file_path', and set root logger to DEBUG if 'verbose'.
    """
    if config_file_path:
        config = from_json_or_yaml(config_file_path)
    else:
        config = copy.deepcopy(DEFAULT_LOGGING_CONFIG)

    # If user passed a custom file path for logs, override (or add) the file handler
    if log_file_path:
        handlers = config.setdefault("handlers", {})
        if "file_handler" in handlers:
            handlers["file_handler"]["filename"] = str(log_file_path)
        else:
            handlers["file_handler"] = {
                "class": "logging.FileHandler",
                "filename": str(log_file_path),
            }
            if "standard" in config.get("formatters", {}):
                handlers["file_handler"]["formatter"] = "standard"
            config.setdefault("root", {}).setdefault("handlers", []).append("file_handler")

    logging.config.dictConfig(config)

    # If --verbose was passed, raise the global level to DEBUG
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    return logging.getLogger(__name__)
