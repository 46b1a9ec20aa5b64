"""FastAPI routes for the address book"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from storefront.db.database import get_db
from storefront.services.auth import Principal, require_owner_or_admin
from storefront.services.address_service import AddressService
from storefront.services.errors import NotFoundError
from storefront.models.schemas import AddressCreate, AddressUpdate, AddressResponse, MessageResponse
from typing import List

router = APIRouter(prefix="/api/addresses", tags=["addresses"])


@router.get("/{user_id}", response_model=List[AddressResponse])
def list_addresses(
    user_id: str,
    principal: Principal = Depends(require_owner_or_admin),
    db: Session = Depends(get_db)
):
    """List a user's addresses, newest first"""
    return AddressService.get_addresses(db, user_id)


@router.post("/{user_id}", response_model=AddressResponse, status_code=status.HTTP_201_CREATED)
def create_address(
    user_id: str,
    address: AddressCreate,
    principal: Principal = Depends(require_owner_or_admin),
    db: Session = Depends(get_db)
):
    """Create an address; is_default demotes the user's other addresses"""
    try:
        return AddressService.create_address(db, user_id, address)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.put("/{user_id}/{address_id}", response_model=AddressResponse)
def update_address(
    user_id: str,
    address_id: int,
    address_data: AddressUpdate,
    principal: Principal = Depends(require_owner_or_admin),
    db: Session = Depends(get_db)
):
    """Update an address"""
    address = AddressService.update_address(db, user_id, address_id, address_data)
    if not address:
        raise HTTPException(status_code=404, detail="Address not found")
    return address


@router.delete("/{user_id}/{address_id}", response_model=MessageResponse)
def delete_address(
    user_id: str,
    address_id: int,
    principal: Principal = Depends(require_owner_or_admin),
    db: Session = Depends(get_db)
):
    """Delete an address"""
    if not AddressService.delete_address(db, user_id, address_id):
        raise HTTPException(status_code=404, detail="Address not found")
    return MessageResponse(message="Address deleted")
