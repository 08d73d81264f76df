from typing import List, Optional

from pydantic import BaseModel


# ---------- categories ----------

class CategoryCreate(BaseModel):
    name: str
    slug: Optional[str] = None
    parent_id: Optional[int] = None
    status: bool = True


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    parent_id: Optional[int] = None
    status: Optional[bool] = None


class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    parent_id: Optional[int] = None
    status: bool

    class Config:
        from_attributes = True


class ProductCategoriesUpdate(BaseModel):
    category_ids: List[int]


# ---------- families ----------

class ProductFamilyCreate(BaseModel):
    name: str
    code: str
    status: bool = True
    attribute_ids: List[int] = []


class ProductFamilyResponse(BaseModel):
    id: int
    name: str
    code: str
    status: bool

    class Config:
        from_attributes = True


# ---------- attributes ----------

class AttributeValueCreate(BaseModel):
    value: str
    sort_order: int = 0


class AttributeValueResponse(AttributeValueCreate):
    id: int
    attribute_id: int

    class Config:
        from_attributes = True


class AttributeCreate(BaseModel):
    code: str
    name: str
    type: str = "select"
    is_filterable: bool = False


class AttributeResponse(AttributeCreate):
    id: int
    values: List[AttributeValueResponse] = []

    class Config:
        from_attributes = True


class ProductAttributesUpdate(BaseModel):
    attribute_value_ids: List[int]


class ProductAttributeValueResponse(BaseModel):
    attribute_id: int
    attribute_code: str
    attribute_value_id: int
    value: str

    class Config:
        from_attributes = True
