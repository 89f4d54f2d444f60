import logging

import config
from enums.cart_item_type import CartItemType
from models.cart_line import CartLine
from models.catalog import CatalogSelectionDTO
from models.checkout import OrderTotalsDTO

logger = logging.getLogger(__name__)


class PricingService:
    """Turns catalog selections into cart lines and computes order totals."""

    @staticmethod
    def compose_line_id(catalog_id: str, provider_id: str | None) -> str:
        """
        Cart key for a catalog item.

        The same test is offered by several providers at different prices,
        so provider-bound tests are keyed "<test id>-<provider id>". The
        catalog id itself is kept on the line, order items never have to
        split the key again.
        """
        if provider_id:
            return f"{catalog_id}-{provider_id}"
        return catalog_id

    @staticmethod
    def normalize(selection: CatalogSelectionDTO) -> CartLine:
        """
        Build the canonical cart line for a catalog selection.

        - Tests bound to a provider get a composed id (see compose_line_id)
        - Packages keep their catalog id: a package is one product even when
          a provider fulfils it, and re-adding it must hit the same line
        - Services carry no catalog reference in the order
        - Prices are rounded to whole currency units

        Args:
            selection: Item picked from the catalog/provider lookup

        Returns:
            CartLine with quantity 1
        """
        if selection.item_type == CartItemType.TEST:
            line_id = PricingService.compose_line_id(selection.id, selection.provider_id)
        else:
            line_id = selection.id

        return CartLine(
            id=line_id,
            catalog_id=selection.id,
            name=selection.name.strip(),
            unit_price=int(round(selection.price)),
            quantity=1,
            provider_id=selection.provider_id or None,
            provider_name=selection.provider_name or None,
            item_type=selection.item_type,
            family_member_id=selection.family_member_id
        )

    @staticmethod
    def calculate_subtotal(lines: list[CartLine]) -> int:
        return sum(line.unit_price * line.quantity for line in lines)

    @staticmethod
    def calculate_discount(coupon_code: str | None, subtotal: int) -> int:
        """
        Flat coupon discount, capped at the subtotal.

        Unknown or empty codes give no discount.
        """
        if not coupon_code:
            return 0
        amount = config.COUPON_CODES.get(coupon_code.strip().upper())
        if amount is None:
            logger.info(f"Coupon '{coupon_code}' rejected: unknown code")
            return 0
        return min(amount, subtotal)

    @staticmethod
    def calculate_totals(lines: list[CartLine], coupon_code: str | None = None) -> OrderTotalsDTO:
        subtotal = PricingService.calculate_subtotal(lines)
        discount = PricingService.calculate_discount(coupon_code, subtotal)
        return OrderTotalsDTO(
            subtotal=subtotal,
            discount=discount,
            total=subtotal - discount,
            coupon_code=coupon_code.strip().upper() if discount else None
        )
