from decimal import Decimal, ROUND_FLOOR
from typing import Tuple

from chalicelib.constants.constants import POINTS_PER_CURRENCY_UNIT, POINTS_PER_DISCOUNT_STEP, DISCOUNT_PER_STEP
from chalicelib.utils import data as utils_data


def points_for(total: Decimal) -> Decimal:
    return Decimal(total) * Decimal(POINTS_PER_CURRENCY_UNIT)


def apply_points(total: Decimal, current_points: Decimal) -> Tuple[Decimal, Decimal, Decimal]:
    """
    Accrue points for the order total and convert every full step of points into a discount.
    The discount never exceeds the order total.
    :return:
    final total, discount, points left on the profile
    """
    total = utils_data.money(total)
    combined_points = Decimal(current_points or 0) + points_for(total)
    discount_steps = (combined_points / POINTS_PER_DISCOUNT_STEP).to_integral_value(rounding=ROUND_FLOOR)
    discount = min(discount_steps * DISCOUNT_PER_STEP, total)
    remaining_points = combined_points - discount_steps * POINTS_PER_DISCOUNT_STEP
    return utils_data.money(total - discount), utils_data.money(discount), remaining_points
