from .auth import Store, SessionToken
from .vouchers import Voucher, VoucherItem, VOUCHER_STATE_PENDING, VOUCHER_STATE_SETTLED, VOUCHER_STATES

__all__ = [
    'Store', 'SessionToken',
    'Voucher', 'VoucherItem',
    'VOUCHER_STATE_PENDING', 'VOUCHER_STATE_SETTLED', 'VOUCHER_STATES',
]
