"""
Validation service for request inputs.
Centralizes validation logic to keep endpoints clean.
"""

from fastapi import HTTPException, UploadFile

from config import MAX_BATCH_ITEMS, MAX_UPLOAD_SIZE


class ValidationService:
    """Handles validation for API requests."""

    MAX_UPLOAD_SIZE = MAX_UPLOAD_SIZE
    MAX_BATCH_ITEMS = MAX_BATCH_ITEMS

    @staticmethod
    async def validate_and_read_upload(upload: UploadFile | None) -> str:
        """
        Validate and read an uploaded TOON document.

        Checks the size BEFORE decoding so oversized uploads are rejected early.

        Args:
            upload: Uploaded file

        Returns:
            File content as text

        Raises:
            HTTPException: If the file is missing, too large or not UTF-8
        """
        if not upload:
            raise HTTPException(status_code=400, detail="No file uploaded")

        # Read only up to MAX_SIZE + 1 byte to detect oversized files
        content = await upload.read(ValidationService.MAX_UPLOAD_SIZE + 1)

        if len(content) > ValidationService.MAX_UPLOAD_SIZE:
            raise HTTPException(
                status_code=413,
                detail=f"File too large (max {ValidationService.MAX_UPLOAD_SIZE} bytes)"
            )

        try:
            return content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise HTTPException(
                status_code=400,
                detail=f"File must be UTF-8 encoded text: {e}"
            ) from e

    @staticmethod
    def validate_batch_size(count: int) -> None:
        """Reject batches above the configured item limit."""
        if count > ValidationService.MAX_BATCH_ITEMS:
            raise HTTPException(
                status_code=413,
                detail=f"Too many items ({count}, max {ValidationService.MAX_BATCH_ITEMS})"
            )
