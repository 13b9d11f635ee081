"""Address normalization endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from ...schemas.analysis import ParseAddressRequest, ParsedAddressModel
from ...services.address import normalize_address_key, parse_address

router = APIRouter(prefix="/address", tags=["address"])


@router.post("/parse", response_model=ParsedAddressModel, status_code=status.HTTP_200_OK)
def parse_address_endpoint(payload: ParseAddressRequest) -> ParsedAddressModel:
    parsed = ParsedAddressModel.model_validate(parse_address(payload.address))
    parsed.key = normalize_address_key(payload.address)
    return parsed
