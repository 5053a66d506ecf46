from __future__ import annotations

from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

# 三态开关：True / False / "all"（不过滤）
TriState = Optional[Union[bool, Literal["all"]]]


class SortOption(BaseModel):
    field: str
    direction: str = "asc"  # asc/desc


class PageRequest(BaseModel):
    page: Optional[int] = Field(default=None, ge=1)
    limit: Optional[int] = Field(default=None, ge=1)


class MemberSearchFilter(PageRequest):
    search: Optional[str] = None  # 姓名 / 电话 / 会员号
    gender: Optional[str] = None
    active: TriState = None
    join_date_from: Optional[str] = None  # YYYY-MM-DD
    join_date_to: Optional[str] = None
    birth_date_from: Optional[str] = None
    birth_date_to: Optional[str] = None
    age_min: Optional[int] = None
    age_max: Optional[int] = None
    has_phone: Optional[bool] = None
    has_email: Optional[bool] = None
    has_membership: Optional[bool] = None
    assigned_staff_id: Optional[Union[int, str]] = None  # id / "unassigned" / "all"
    sort: Optional[SortOption] = None


class StaffSearchFilter(PageRequest):
    search: Optional[str] = None
    gender: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    is_active: TriState = None  # None -> 仅在职
    hire_date_from: Optional[str] = None
    hire_date_to: Optional[str] = None
    salary_min: Optional[float] = None
    salary_max: Optional[float] = None
    sort: Optional[SortOption] = None


class PaymentSearchFilter(PageRequest):
    search: Optional[str] = None  # 支付单号 / 会员姓名 / 会员电话
    payment_type: Optional[str] = None  # membership/pt/other/all
    payment_method: Optional[str] = None
    status: Optional[str] = None  # completed/refunded/cancelled/all; None -> 排除 cancelled
    member_id: Optional[int] = None
    staff_id: Optional[int] = None
    payment_date_from: Optional[str] = None
    payment_date_to: Optional[str] = None
    amount_min: Optional[float] = None
    amount_max: Optional[float] = None
    sort: Optional[SortOption] = None
