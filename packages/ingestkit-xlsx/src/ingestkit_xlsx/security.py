"""Pre-flight security scanner for .xlsx files.

Rejects files with a disallowed extension, missing or empty files,
oversized files, and files that are not zip containers, before the reader
opens them.
"""

from __future__ import annotations

import logging
import os
import pathlib

from ingestkit_xlsx.config import XlsxReaderConfig
from ingestkit_xlsx.errors import ErrorCode, IngestError

logger = logging.getLogger("ingestkit_xlsx")

_ZIP_MAGIC = b"PK\x03\x04"
_LARGE_FILE_THRESHOLD_MB = 10


class XlsxSecurityScanner:
    """Run pre-flight checks on an .xlsx file.

    Returns a list of errors/warnings.  Fatal errors (``E_*`` codes) mean
    the file should not be opened; the first fatal error stops further
    checks.
    """

    def __init__(self, config: XlsxReaderConfig) -> None:
        self.config = config

    def scan(self, file_path: str) -> list[IngestError]:
        """Run all pre-flight checks.

        Returns:
            List of errors/warnings.  Fatal errors have codes starting
            with ``E_``.
        """
        errors: list[IngestError] = []

        # --- 1. Extension check ---
        allowed = {ext.lower() for ext in self.config.allowed_extensions}
        suffix = pathlib.Path(file_path).suffix.lower()
        if suffix not in allowed:
            errors.append(
                IngestError(
                    code=ErrorCode.E_SECURITY_BAD_EXTENSION,
                    message=(
                        f"File extension '{suffix}' is not allowed. "
                        f"Allowed: {sorted(allowed)}"
                    ),
                    stage="security",
                )
            )
            return errors

        # --- 2. File existence ---
        if not os.path.isfile(file_path):
            errors.append(
                IngestError(
                    code=ErrorCode.E_PARSE_CORRUPT,
                    message=f"File not found or not readable: {file_path}",
                    stage="security",
                )
            )
            return errors

        # --- 3. Empty file ---
        file_size = os.path.getsize(file_path)
        if file_size == 0:
            errors.append(
                IngestError(
                    code=ErrorCode.E_PARSE_EMPTY,
                    message=f"File is empty (0 bytes): {file_path}",
                    stage="security",
                )
            )
            return errors

        # --- 4. File size limit ---
        max_bytes = self.config.max_file_size_mb * 1024 * 1024
        if file_size > max_bytes:
            errors.append(
                IngestError(
                    code=ErrorCode.E_SECURITY_TOO_LARGE,
                    message=(
                        f"File size {file_size} bytes exceeds limit of "
                        f"{max_bytes} bytes ({self.config.max_file_size_mb} MB)"
                    ),
                    stage="security",
                )
            )
            return errors

        # --- 5. Large file warning ---
        large_threshold = _LARGE_FILE_THRESHOLD_MB * 1024 * 1024
        if file_size > large_threshold:
            errors.append(
                IngestError(
                    code=ErrorCode.W_LARGE_FILE,
                    message=(
                        f"File is {file_size / (1024 * 1024):.1f} MB "
                        f"(> {_LARGE_FILE_THRESHOLD_MB} MB)"
                    ),
                    stage="security",
                    recoverable=True,
                )
            )

        # --- 6. Zip container magic ---
        try:
            with open(file_path, "rb") as fh:
                header = fh.read(len(_ZIP_MAGIC))
        except OSError as exc:
            errors.append(
                IngestError(
                    code=ErrorCode.E_PARSE_CORRUPT,
                    message=f"Cannot read file: {exc}",
                    stage="security",
                )
            )
            return errors

        if header != _ZIP_MAGIC:
            errors.append(
                IngestError(
                    code=ErrorCode.E_SECURITY_BAD_MAGIC,
                    message=(
                        f"File does not start with the zip signature "
                        f"(got {header!r}); not an .xlsx container"
                    ),
                    stage="security",
                )
            )
            return errors

        logger.debug(
            "ingestkit_xlsx | security scan passed | file=%s | size=%d",
            os.path.basename(file_path),
            file_size,
        )
        return errors
