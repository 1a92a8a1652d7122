import os
import logging
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO", log_dir: Optional[str] = None):
    """
    Setup logging for the service.

    Logs always go to stdout; when log_dir is set they are also appended
    to <log_dir>/api.log.
    """
    handlers = [logging.StreamHandler()]
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(os.path.join(log_dir, "api.log")))

    logging.basicConfig(
        level=level.upper(),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


class MCPResponse(JSONResponse):
    """
    Standard response envelope for all API endpoints.
    """
    def __init__(self, data: Any = None, message: str = "success", status: str = "ok", **kwargs):
        content = {
            "status": status,
            "message": message,
            "data": jsonable_encoder(data),
        }
        super().__init__(content=content, **kwargs)


class BaseMicroservice:
    """
    Base class for all service modules. Provides:
    - Error/event logging
    - Standard response envelope
    """
    def __init__(self, name: str = "identity_service"):
        self.logger = logging.getLogger(name)

    def mcp_response(self, data: Any = None, message: str = "success", status: str = "ok", **kwargs):
        """
        Return a standard response envelope.
        """
        return MCPResponse(data=data, message=message, status=status, **kwargs)

    def log_event(self, event: str, details: Dict[str, Any] = None):
        self.logger.info(f"EVENT: {event} | Details: {details}")

    def log_warning(self, event: str, details: Dict[str, Any] = None):
        self.logger.warning(f"EVENT: {event} | Details: {details}")

    def log_error(self, error: Exception, context: str = ""):
        self.logger.error(
            f"ERROR: {error.__class__.__name__}: {str(error)} | Context: {context}"
        )
