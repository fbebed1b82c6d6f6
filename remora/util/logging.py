"""
Structured operation logging for the memory store.
Only identifiers, scopes and dimensions are logged, never payload text.
"""

import logging
import os
from typing import Any, Dict


class StructuredLogger:
    """Structured logger for memory, vector index and rebuild operations."""

    def __init__(self, name: str = "remora"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        if status == "failed":
            self.logger.error(message)
        else:
            self.logger.info(message)

    def log_memory_operation(self, operation: str, memory_id: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log a persistent store operation on a single memory record."""
        log_details = {"memory_id": memory_id}
        if details:
            log_details.update(details)

        self.log_operation(f"memory.{operation}", status, log_details)

    def log_vector_operation(self, operation: str, record_id: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log a vector index operation."""
        log_details = {"record_id": record_id}
        if details:
            log_details.update(details)

        self.log_operation(f"vector.{operation}", status, log_details)

    def log_search(self, user_id: str, candidates: int, returned: int, top_k: int):
        """Log a ranked search and how many candidates survived scope filtering."""
        self.log_operation("memory.search", "success", {
            "user_id": user_id,
            "top_k": top_k,
            "candidates": candidates,
            "returned": returned,
            "filtered": candidates - returned,
        })

    def log_rebuild(self, scanned: int, indexed: int, skipped: int, duration_ms: float):
        """Log a vector index rebuild from the persistent store."""
        self.log_operation("vector.rebuild", "success", {
            "scanned": scanned,
            "indexed": indexed,
            "skipped": skipped,
            "duration_ms": duration_ms,
        })

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()
