from decimal import Decimal, InvalidOperation

from django import template
from django.conf import settings

register = template.Library()


def _money(value):
    symbol = getattr(settings, 'LEDGER_CURRENCY_SYMBOL', '₱')
    return f"{symbol}{value:,.2f}"


@register.filter
def signed_balance(value):
    """
    Renders a signed account balance.
    Usage: {{ student.balance|signed_balance }} -> "₱1,250.00 due", "₱300.00 credit", "₱0.00"
    """
    try:
        amount = Decimal(str(value)).quantize(Decimal('0.01'))
    except (InvalidOperation, TypeError, ValueError):
        return ''
    if amount > 0:
        return f"{_money(amount)} due"
    if amount < 0:
        return f"{_money(-amount)} credit"
    return _money(Decimal('0.00'))

