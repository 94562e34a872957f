"""Routes through which the identity provider publishes the signed-in user."""

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from services.identity_session import IdentitySession

router = APIRouter(prefix="/session")


class SignInPayload(BaseModel):
	subject_id: str


def _identity(request: Request) -> IdentitySession:
	return request.app.state.identity


@router.get("")
async def get_session_route(request: Request):
	identity = _identity(request)
	return {"authenticated": identity.is_authenticated, "subject_id": identity.subject_id, "loading": identity.loading}


@router.post("")
async def sign_in_route(request: Request, payload: SignInPayload):
	identity = _identity(request)
	try:
		identity.sign_in(payload.subject_id)
	except ValueError as exc:
		raise HTTPException(status_code=400, detail=str(exc)) from exc
	return {"authenticated": True, "subject_id": identity.subject_id}


@router.delete("")
async def sign_out_route(request: Request):
	_identity(request).sign_out()
	return {"authenticated": False}
