#  Copyright ©  2025 SRI International.
#  This work is licensed under CC BY-NC-ND 4.0 license.
#  To view a copy of this license, visit https://creativecommons.org/licenses/by-nc-nd/4.0/

from logging.config import dictConfig
import structlog
from typing import Any

TROJANLY_LOG = "trojanly"
_logger = None
pre_chain = [
    # Add the log level and producer to the event_dict if the log entry is not from structlog.
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
]
config_dict = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'trojanly-formatter': {
            '()': structlog.stdlib.ProcessorFormatter,
            'processor': structlog.dev.ConsoleRenderer(colors=True),
            'foreign_pre_chain': pre_chain,
        },
        'jsonformatter': {
            '()': structlog.stdlib.ProcessorFormatter,
            'processor': structlog.processors.JSONRenderer(sort_keys=False),
            'foreign_pre_chain': pre_chain,
        },
    },
    'handlers': {
        'structlog-console': {
            'level': 'DEBUG',
            'formatter': 'trojanly-formatter',
            'class': 'logging.StreamHandler',
            'stream': 'ext://sys.stderr',  # keep stdout for emitted configs
        },
    },
    'loggers': {
        TROJANLY_LOG: {
            'handlers': ['structlog-console'],
            'level': 'INFO',
            'propagate': False
        },
    },
}

def init_logging(level: str = "INFO", json_output: bool = False) -> Any:
    """
    Configure stdlib logging and structlog once and return the bound logger.
    Subsequent calls return the already configured logger unchanged.
    """
    global _logger
    if _logger is not None:
        return _logger

    config_dict['loggers'][TROJANLY_LOG]['level'] = level.upper()
    if json_output:
        config_dict['handlers']['structlog-console']['formatter'] = 'jsonformatter'
    dictConfig(config_dict)
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.filter_by_level,            # filter here for other processors
            structlog.processors.StackInfoRenderer(),    # Include the stack when stack_info=True
            structlog.processors.format_exc_info,        # Include the exception when exc_info=True
            structlog.processors.UnicodeDecoder(),       # Decodes the unicode values in any kv pairs
            structlog.processors.TimeStamper(fmt='%Y-%m-%d %H:%M:%S,%f'),
            # this must be the last one if further customizing formats below...
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    _logger = structlog.get_logger(TROJANLY_LOG)
    _logger.debug("Initialized logging for trojanly", level=level)
    return _logger
