import logging
from typing import Any, Optional

logger = logging.getLogger(__name__)


class InvalidArgumentError(ValueError):
    """Raised when a caller passes a value outside the modeled domain (e.g. negative XP)."""

    def __init__(self, argument: str, value: Any, reason: str):
        self.argument = argument
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {argument}={value!r}: {reason}")


class CatalogError(InvalidArgumentError):
    """Raised for a malformed badge catalog, an unknown catalog name or an unreadable catalog file."""

    def __init__(self, reason: str, catalog: Optional[str] = None):
        self.catalog = catalog
        super().__init__(argument="catalog", value=catalog, reason=reason)


class HTTPRequestError(Exception):
    def __init__(self, status: int, url: str, reason: str, method: str, body: Optional[str] = None):
        self.status = status
        self.url = url
        self.reason = reason
        self.method = method
        self.body = body
        message = f"HTTP {status} Error for {url}: {reason}"
        if body:
            message += f" | Response: {body}"
        super().__init__(message)

    def log_http_error(self):
        logger.error("❌ HTTP Request Failed:")
        logger.error(f"  ➤ Method : {self.method}")
        logger.error(f"  ➤ URL    : {self.url}")
        logger.error(f"  ➤ Status : {self.status}")
        logger.error(f"  ➤ Reason : {self.reason}")
        if self.body:
            logger.error(f"  ➤ Body   : {self.body}")


class DBError(Exception):
    def __init__(self, status: int, reason: str, collection: str, message: str):
        super().__init__(message)
        self.message = message
        self.status = status
        self.reason = reason
        self.collection = collection

    def log_db_error(self):
        logger.error("❌ Database Request Failed:")
        logger.error(f"  ➤ Error  : {self.message}")
        logger.error(f"  ➤ Status : {self.status}")
        logger.error(f"  ➤ Reason : {self.reason}")
        logger.error(f"  ➤ Collection : {self.collection}")
