from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from core.db import get_db
from models.brand import Brand
from models.category import Category
from models.order import Order
from models.product import Product
from models.user import User
from routes.auth import require_admin
from routes.deps import get_order_manager
from schemas.admin import DashboardStats
from schemas.order import OrderOut, OrderStatusUpdate
from services.context import Principal
from services.email import send_order_status_update
from services.orders import OrderLifecycleManager

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/orders", response_model=List[OrderOut])
def list_orders(admin: User = Depends(require_admin), manager: OrderLifecycleManager = Depends(get_order_manager)):
    return manager.list_orders(Principal(id=admin.id, role=admin.role))


@router.put("/orders/{order_id}", response_model=OrderOut)
def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    admin: User = Depends(require_admin),
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    order = manager.update_order_status(order_id, data.status, Principal(id=admin.id, role=admin.role), data.reason)
    send_order_status_update(order)
    return order


@router.get("/stats", response_model=DashboardStats)
def dashboard_stats(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return DashboardStats(
        user_count=db.query(func.count(User.id)).scalar(),
        product_count=db.query(func.count(Product.id)).scalar(),
        order_count=db.query(func.count(Order.id)).scalar(),
        category_count=db.query(func.count(Category.id)).scalar(),
        brand_count=db.query(func.count(Brand.id)).scalar(),
    )
