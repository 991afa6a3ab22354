class BillingError(Exception):
    pass


class CouponError(BillingError):
    pass


class CouponNotFoundError(CouponError):
    pass


class CouponWrongTypeError(CouponError):
    pass


class CouponAlreadyUsedError(CouponError):
    pass


class CouponInUseError(CouponError):
    pass


class CouponDuplicateError(CouponError):
    pass


class CouponValidationError(CouponError):
    pass


class PaymentError(BillingError):
    pass


class PaymentValidationError(PaymentError):
    pass


class PaymentMonthNotAllowedError(PaymentValidationError):
    pass


class PaymentReceiptRequiredError(PaymentValidationError):
    pass


class PaymentDuplicateError(PaymentError):
    pass


class PaymentStudentNotFoundError(PaymentError):
    pass


class PaymentNotFoundError(PaymentError):
    pass


class PaymentAlreadyApprovedError(PaymentError):
    pass
