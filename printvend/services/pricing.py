# printvend/services/pricing.py
from dataclasses import dataclass
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP
from typing import Optional

ZERO = Decimal("0")
CENT = Decimal("0.01")


def D(x) -> Decimal:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))


def round_money(x) -> Decimal:
    return D(x).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class RateTable:
    """Per-sheet price for each of the four (color, duplex) combinations."""
    bw_single: Decimal
    bw_double: Decimal
    col_single: Decimal
    col_double: Decimal

    def rate(self, is_color: bool, is_duplex: bool) -> Decimal:
        if is_color:
            return self.col_double if is_duplex else self.col_single
        return self.bw_double if is_duplex else self.bw_single


@dataclass(frozen=True)
class PricingPolicy:
    rates: RateTable
    tax_rate: Decimal
    coin_value: Decimal
    cashback_divisor: int

    @classmethod
    def from_settings(cls, settings) -> "PricingPolicy":
        return cls(
            rates=RateTable(
                bw_single=D(settings.rate_bw_single),
                bw_double=D(settings.rate_bw_double),
                col_single=D(settings.rate_col_single),
                col_double=D(settings.rate_col_double),
            ),
            tax_rate=D(settings.tax_rate),
            coin_value=D(settings.coin_value),
            cashback_divisor=settings.cashback_divisor,
        )


@dataclass(frozen=True)
class PricingInput:
    is_color: bool
    is_duplex: bool
    page_count: int
    copies: int
    is_vip: bool = False
    coupon_percent: Optional[Decimal] = None  # only pass a coupon that already validated
    wallet_balance: Decimal = ZERO
    use_coins: bool = False


@dataclass(frozen=True)
class PriceBreakdown:
    sheets_per_copy: int
    total_sheets: int
    rate: Decimal
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    coins_redeemed: Decimal
    final_total: Decimal
    coins_earned: int


def sheets_for(page_count: int, is_duplex: bool) -> int:
    # an odd trailing page still takes a whole sheet
    return -(-page_count // 2) if is_duplex else page_count


def compute_price(params: PricingInput, policy: PricingPolicy) -> PriceBreakdown:
    """
    Deterministic price of one print order:
      - sheets from pages (duplex halves, rounding up) times copies
      - subtotal at the table rate, plus tax
      - VIP zeroes everything and skips coupon / coins / cashback
      - coupon percent comes off the post-tax total
      - coins cover at most what is left, never more than the balance is worth
      - cashback is floor(subtotal / divisor), pre-tax and pre-discount
    Rejecting zero or negative quantities is the caller's job.
    """
    rate = policy.rates.rate(params.is_color, params.is_duplex)
    sheets_per_copy = sheets_for(params.page_count, params.is_duplex)
    total_sheets = sheets_per_copy * params.copies

    subtotal = total_sheets * rate
    tax = subtotal * policy.tax_rate
    total = subtotal + tax

    if params.is_vip:
        subtotal = tax = total = ZERO

    discount = ZERO
    if params.coupon_percent is not None and not params.is_vip and total > 0:
        discount = total * D(params.coupon_percent) / 100
        total -= discount

    coins_redeemed = ZERO
    balance = D(params.wallet_balance)
    if params.use_coins and not params.is_vip and total > 0 and balance > 0:
        covered = min(total, balance * policy.coin_value)
        # whole hundredths of a coin only; recompute what they are worth
        coins_redeemed = (covered / policy.coin_value).quantize(CENT, rounding=ROUND_DOWN)
        if covered == total:
            # fully covered; the sub-cent left by truncation is not charged
            total = ZERO
        else:
            total -= coins_redeemed * policy.coin_value

    final_total = round_money(max(ZERO, total))
    coins_earned = 0 if params.is_vip else int(subtotal // policy.cashback_divisor)

    return PriceBreakdown(
        sheets_per_copy=sheets_per_copy,
        total_sheets=total_sheets,
        rate=rate,
        subtotal=subtotal,
        tax=tax,
        discount=discount,
        coins_redeemed=coins_redeemed,
        final_total=final_total,
        coins_earned=coins_earned,
    )
