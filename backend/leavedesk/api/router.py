from fastapi import APIRouter

from leavedesk.api.accruals import accrual_router
from leavedesk.api.balances import balance_router, employee_balance_router
from leavedesk.api.calendar import calendar_router
from leavedesk.api.carry_forwards import carry_forward_router
from leavedesk.api.holidays import holidays_router
from leavedesk.api.leave_types import leave_types_router
from leavedesk.api.requests import requests_router

api_router = APIRouter()
api_router.include_router(leave_types_router)
api_router.include_router(employee_balance_router)
api_router.include_router(balance_router)
api_router.include_router(accrual_router)
api_router.include_router(carry_forward_router)
api_router.include_router(requests_router)
api_router.include_router(holidays_router)
api_router.include_router(calendar_router)
