from typing import List, Optional

from fastapi import APIRouter, Depends

from routes.deps import get_order_manager, get_principal
from schemas.order import CheckoutRequest, CheckoutOut, OrderOut
from services.context import Principal
from services.email import send_order_confirmation
from services.orders import CheckoutDetails, OrderLifecycleManager

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("/", response_model=CheckoutOut, status_code=201)
def create_order(
    data: Optional[CheckoutRequest] = None,
    principal: Principal = Depends(get_principal),
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    details = CheckoutDetails(**data.model_dump()) if data else None
    result = manager.create_order(principal.id, details)
    send_order_confirmation(result.order)
    return result


@router.get("/", response_model=List[OrderOut])
def list_orders(principal: Principal = Depends(get_principal), manager: OrderLifecycleManager = Depends(get_order_manager)):
    return manager.list_orders(principal)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    principal: Principal = Depends(get_principal),
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    return manager.get_order(order_id, principal)
