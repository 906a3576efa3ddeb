"""KYC document submission."""

from fastapi import APIRouter, Depends, File, Form, UploadFile

from sunyield.sandbox.api.deps import current_user, get_platform
from sunyield.sandbox.state import PlatformState, UserRecord

router = APIRouter(prefix="/api/kyc", tags=["kyc"])


@router.post("/submit")
async def submit(
    document_type: str = Form(alias="documentType"),
    document_number: str = Form(alias="documentNumber"),
    document: UploadFile = File(),  # noqa: B008
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict:
    record = platform.submit_kyc(user.id, document_type, document_number, document.filename)
    return record.to_api()


@router.get("/status")
async def status(
    user: UserRecord = Depends(current_user),  # noqa: B008
    platform: PlatformState = Depends(get_platform),  # noqa: B008
) -> dict | None:
    record = platform.latest_kyc(user.id)
    return record.to_api() if record else None
