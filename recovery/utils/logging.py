"""
Shared structured logger for the adaptation services.

Tracebacks are flattened onto one line under the ``exception`` key so a
failed evaluation or aggregation stays a single JSON log record.
"""
import os
import sys
import json
import traceback
from aws_lambda_powertools import Logger

SERVICE_NAME = os.environ.get('POWERTOOLS_SERVICE_NAME', 'recovery_adaptation')

def format_exception(exc_info):
    """Flatten exception info into a single ' | '-separated line."""
    if exc_info is True:
        exc_info = sys.exc_info()
    elif isinstance(exc_info, BaseException):
        exc_info = (type(exc_info), exc_info, exc_info.__traceback__)

    if not exc_info or not isinstance(exc_info, tuple) or exc_info[0] is None:
        return None
    trace = ''.join(traceback.format_exception(*exc_info))
    return trace.replace('\n', ' | ').strip(' |')

class SingleLineLogger(Logger):
    """Powertools logger whose exception() records the traceback as a field."""

    def exception(self, message, *args, **kwargs):
        extra = dict(kwargs.pop('extra', None) or {})
        extra['exception'] = format_exception(kwargs.pop('exc_info', True))
        super().exception(message, *args, exc_info=False, extra=extra, **kwargs)

logger = SingleLineLogger(
    service=SERVICE_NAME,
    level=os.environ.get('LOG_LEVEL', 'INFO'),
    json_serializer=json.dumps,
    use_rfc3339=True
)

logger.append_keys(
    stage=os.environ.get('STAGE', 'dev'),
    version=os.environ.get('APP_VERSION')
)

def log_exception(logger, message, exc_info=None, level='error', **kwargs):
    """
    Log an exception on one line with any logger.

    Args:
        logger: Logger to write to
        message: Log message
        exc_info: Exception, exc_info tuple or True; the exception being
            handled when omitted
        level: Name of the logger method to use
    """
    extra = dict(kwargs.pop('extra', None) or {})
    extra['exception'] = format_exception(exc_info or True)
    getattr(logger, level)(message, extra=extra, **kwargs)
