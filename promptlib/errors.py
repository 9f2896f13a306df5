from enum import Enum


class ErrorCode(Enum):
    VALIDATION = "validation"
    MALFORMED_DOCUMENT = "malformed_document"
    INVALID_DOCUMENT = "invalid_document"
    INVALID_FILE = "invalid_file"
    NOTHING_TO_EXPORT = "nothing_to_export"
    BACKUP_FAILED = "backup_failed"
    RESTORE_FAILED = "restore_failed"
    CRITICAL_RESTORE_FAILURE = "critical_restore_failure"
    STORAGE_WRITE_FAILED = "storage_write_failed"
    SCHEMA_VERSION = "schema_version"
    STORAGE = "storage"


class PromptLibError(Exception):
    def __init__(self, code: ErrorCode, message: str, errors: list[str] | None = None):
        self.code = code
        self.message = message
        self.errors = errors or []
        super().__init__(message)

    @classmethod
    def validation(cls, detail: str) -> "PromptLibError":
        return cls(ErrorCode.VALIDATION, detail)

    @classmethod
    def malformed_document(cls, detail: str) -> "PromptLibError":
        return cls(ErrorCode.MALFORMED_DOCUMENT, f"Malformed import file: {detail}")

    @classmethod
    def invalid_document(cls, errors: list[str]) -> "PromptLibError":
        return cls(
            ErrorCode.INVALID_DOCUMENT,
            "Invalid import file:\n" + "\n".join(errors),
            errors=list(errors),
        )

    @classmethod
    def invalid_file(cls, name: str) -> "PromptLibError":
        return cls(
            ErrorCode.INVALID_FILE,
            f"Please select a valid JSON file: {name!r} does not end in .json",
        )

    @classmethod
    def nothing_to_export(cls) -> "PromptLibError":
        return cls(ErrorCode.NOTHING_TO_EXPORT, "No prompts to export!")

    @classmethod
    def backup_failed(cls, detail: str) -> "PromptLibError":
        return cls(
            ErrorCode.BACKUP_FAILED,
            f"Failed to create backup. Import aborted for safety. ({detail})",
        )

    @classmethod
    def restore_failed(cls, detail: str) -> "PromptLibError":
        return cls(ErrorCode.RESTORE_FAILED, f"Restore failed: {detail}")

    @classmethod
    def critical_restore_failure(cls, detail: str) -> "PromptLibError":
        return cls(
            ErrorCode.CRITICAL_RESTORE_FAILURE,
            f"CRITICAL: Backup restoration failed! Check your data manually. ({detail})",
        )

    @classmethod
    def storage_write_failed(cls, key: str, detail: str) -> "PromptLibError":
        return cls(
            ErrorCode.STORAGE_WRITE_FAILED,
            f"Storage write failed for {key!r}: {detail}",
        )

    @classmethod
    def schema_version(cls, expected: int, got: int) -> "PromptLibError":
        return cls(
            ErrorCode.SCHEMA_VERSION,
            f"Schema version mismatch: expected {expected}, got {got}",
        )

    @classmethod
    def storage(cls, detail: str) -> "PromptLibError":
        return cls(ErrorCode.STORAGE, f"Storage error: {detail}")
