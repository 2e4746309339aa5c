from pydantic import BaseModel


class DashboardStats(BaseModel):
    user_count: int
    product_count: int
    order_count: int
    category_count: int
    brand_count: int
