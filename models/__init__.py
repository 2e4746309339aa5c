# Import models so that SQLAlchemy metadata includes them on app startup
from .user import User  # noqa: F401
from .category import Category  # noqa: F401
from .brand import Brand  # noqa: F401
from .product import Product  # noqa: F401
from .cart_item import CartItem  # noqa: F401
from .order import Order  # noqa: F401
from .order_item import OrderItem  # noqa: F401
from .review import Review  # noqa: F401
from .wishlist import WishlistItem  # noqa: F401
from .otp import OTP  # noqa: F401
