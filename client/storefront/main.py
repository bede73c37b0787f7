# client/storefront/main.py
"""
CLI del cliente de la tienda.

Permite recorrer el flujo carrito -> checkout -> pedido contra el backend
configurado en API_BASE_URL, con el token de ACCESS_TOKEN (o --token).

Ejemplos:
    storefront cart
    storefront set-quantity <item_id> 3
    storefront checkout --shipping standard
    storefront complete "https://shop.example/order/success?session_id=cs_123"
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from storefront.api.storefront_api import StorefrontAPI
from storefront.core.config import settings
from storefront.core.exceptions import CheckoutValidationError
from storefront.core.formatting import format_money, format_phone_number
from storefront.core.logging_config import setup_logging
from storefront.core.navigation import Navigator, build_path
from storefront.core.security import TokenStore
from storefront.schemas.cart_schema import Cart
from storefront.schemas.order_schema import Order
from storefront.services.cart_service import OptimisticCartStore
from storefront.services.checkout_service import CheckoutSessionBuilder
from storefront.services.order_service import PaymentCompletionResolver

logger = logging.getLogger(__name__)


def print_order(order: Order) -> None:
    print(f"✅ Pedido {order.order_number or order.id} creado: {format_money(order.total_amount)}")
    info = order.shipping_info
    if info is not None:
        print(f"   📦 {info.recipient_name}, {format_phone_number(info.recipient_phone)}")
        print(f"      {info.address}, {info.city} {info.state} {info.postal_code}".rstrip())


def print_cart(cart: Optional[Cart]) -> None:
    if cart is None or cart.is_empty:
        print("🛒 Tu carrito está vacío.")
        return
    print(f"🛒 Carrito ({cart.total_items} unidades)")
    for item in cart.items:
        options = ", ".join(value for value in (item.color, item.size) if value) or "sin opciones"
        print(f"  - [{item.id}] {item.product.name or item.product.id} ({options}) "
              f"x{item.quantity} @ {format_money(item.price)} = {format_money(item.subtotal)}")
    print(f"  Subtotal: {format_money(cart.subtotal)}")
    remaining = cart.amount_to_free_shipping()
    if remaining > 0:
        print(f"  💡 Add {format_money(remaining)} more to unlock Free Shipping")


async def run(args: argparse.Namespace) -> int:
    token_store = TokenStore(args.token or settings.ACCESS_TOKEN)
    navigator = Navigator(initial_path=settings.CART_PATH)

    async with StorefrontAPI(base_url=args.base_url, token_store=token_store) as api:
        store = OptimisticCartStore(api.cart)

        if args.command == "complete":
            resolver = PaymentCompletionResolver(
                api.payments, api.orders, navigator, token_store, redirect_delay=0
            )
            return_url = args.return_url
            if "session_id=" not in return_url:
                return_url = build_path(settings.ORDER_SUCCESS_PATH, session_id=return_url)
            result = await resolver.resolve(return_url)
            if not result.ok:
                print(f"❌ {result.error}")
                return 1
            if resolver.redirect_task is not None:
                await resolver.redirect_task
            order = result.order
            print_order(order)
            print(f"   -> {navigator.current_path}")
            return 0

        await store.fetch_cart()
        if store.error:
            print(f"❌ {store.error}")
            return 1

        if args.command == "set-quantity":
            await store.update_quantity(args.item_id, args.quantity)
        elif args.command == "remove":
            await store.remove_item(args.item_id)
        elif args.command == "set-options":
            await store.update_item_options(args.item_id, args.color, args.size)
        elif args.command == "checkout":
            return await run_checkout(store, api, navigator, token_store, args.shipping)

        if store.error:
            print(f"⚠️ {store.error}")
        print_cart(store.cart)
        return 0


async def run_checkout(
    store: OptimisticCartStore,
    api: StorefrontAPI,
    navigator: Navigator,
    token_store: TokenStore,
    shipping: Optional[str],
) -> int:
    pending = store.items_needing_options()
    if pending:
        print(f"⚠️ Please select options for {len(pending)} {'item' if len(pending) == 1 else 'items'}:")
        for item in pending:
            print(f"  - [{item.id}] falta: {', '.join(item.missing_options())}")
        return 1

    builder = CheckoutSessionBuilder(store, api.payments, navigator, token_store)
    if builder.cart is None or builder.cart.is_empty:
        print("❌ Your cart is empty. Please add items to cart first.")
        return 1

    for option in builder.shipping_options():
        status = "" if option.available else " (no disponible)"
        print(f"  {option.method.value:<9} {option.label:<18} {format_money(option.fee)}{status}")

    if shipping:
        try:
            builder.select_shipping_method(shipping)
        except CheckoutValidationError as e:
            print(f"❌ {e.message}")
            return 1

    result = await builder.submit()
    if result.error:
        print(f"❌ {result.error}")
        return 1
    print(f"💳 Total: {format_money(result.amount)}")
    print(f"🔗 Completa el pago en: {result.redirect_url}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="storefront", description="Cliente de carrito y checkout de la tienda.")
    parser.add_argument("--base-url", default=None, help="URL base de la API (por defecto API_BASE_URL)")
    parser.add_argument("--token", default=None, help="Token bearer (por defecto ACCESS_TOKEN)")
    parser.add_argument("--log-level", default=None, help="Nivel de logging (por defecto LOG_LEVEL)")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("cart", help="Muestra el carrito")

    quantity = sub.add_parser("set-quantity", help="Cambia la cantidad de un item (1-10)")
    quantity.add_argument("item_id")
    quantity.add_argument("quantity", type=int)

    remove = sub.add_parser("remove", help="Elimina un item del carrito")
    remove.add_argument("item_id")

    options = sub.add_parser("set-options", help="Fija color y/o talla de un item")
    options.add_argument("item_id")
    options.add_argument("--color", default=None)
    options.add_argument("--size", default=None)

    checkout = sub.add_parser("checkout", help="Crea la sesión de pago")
    checkout.add_argument("--shipping", choices=["free", "standard", "express"], default=None)

    complete = sub.add_parser("complete", help="Crea el pedido a partir de la URL de retorno o del id de sesión")
    complete.add_argument("return_url")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
