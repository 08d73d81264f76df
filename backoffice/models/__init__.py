# Importing the modules registers every mapper on Base.metadata.
from backoffice.models.catalog import (  # noqa: F401
    Attribute,
    AttributeValue,
    Category,
    ProductAttributeValue,
    ProductFamily,
)
from backoffice.models.currency import Country, Currency, VatRate  # noqa: F401
from backoffice.models.customer import Address, Customer, CustomerGroup  # noqa: F401
from backoffice.models.order import (  # noqa: F401
    Order,
    OrderAddress,
    OrderHistory,
    OrderProduct,
    OrderShipping,
)
from backoffice.models.product import Product, ProductGroupPrice  # noqa: F401
from backoffice.models.shipping import ShippingMethod  # noqa: F401
from backoffice.models.user import User  # noqa: F401
