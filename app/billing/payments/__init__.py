from __future__ import annotations

from .dashboard import build_month_statuses, student_dashboard
from .reports import list_payments, monthly_details, monthly_stats
from .requests import cancel_payment, check_coupon, request_payment
from .reversal import reverse_and_delete
from .review import approve_payment, reject_payment


class PaymentService:
    request_payment = staticmethod(request_payment)
    cancel_payment = staticmethod(cancel_payment)
    check_coupon = staticmethod(check_coupon)
    approve_payment = staticmethod(approve_payment)
    reject_payment = staticmethod(reject_payment)
    reverse_and_delete = staticmethod(reverse_and_delete)
    student_dashboard = staticmethod(student_dashboard)
    build_month_statuses = staticmethod(build_month_statuses)
    list_payments = staticmethod(list_payments)
    monthly_stats = staticmethod(monthly_stats)
    monthly_details = staticmethod(monthly_details)


__all__ = ["PaymentService"]
