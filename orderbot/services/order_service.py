import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from orderbot.config import settings
from orderbot.logging_config import get_logger
from orderbot.models import Customer, Order, OrderItem, PaymentRecord, PaymentSettings, Product
from orderbot.schemas.conversation import OrderDetails
from orderbot.services.alert_service import alert_error
from orderbot.services.result import Result
from orderbot.services.usage_service import METRIC_ORDERS, increment_usage

logger = get_logger("order_service")

CURRENCY = "INR"
PLACEHOLDER_PRODUCT_NAME = "Custom order"

MSG_REPROMPT = "Please provide all details in the requested format (Name, Phone, Email, Address)."
MSG_OUT_OF_STOCK = (
    "Sorry, {product} is currently out of stock, so we couldn't place your order. "
    "Feel free to ask about our other products!"
)

ERROR_OUT_OF_STOCK = "out_of_stock"
ERROR_ORDER_FAILED = "order_failed"


@dataclass
class AssembledOrder:
    order: Order
    item: OrderItem
    payment: PaymentRecord
    payment_settings: Optional[PaymentSettings]


def compute_tax(subtotal: int, rate_percent: int) -> int:
    """Fixed-rate tax in minor units, rounded half up."""
    return (subtotal * rate_percent + 50) // 100


def resolve_order_product(db: Session, owner_id: str) -> Optional[Product]:
    return (
        db.query(Product)
        .filter(Product.owner_id == owner_id, Product.is_active.is_(True))
        .order_by(Product.created_at, Product.name)
        .first()
    )


def get_payment_settings(db: Session, owner_id: str) -> Optional[PaymentSettings]:
    return db.query(PaymentSettings).filter(PaymentSettings.owner_id == owner_id).first()


def payment_preference(payment_settings: Optional[PaymentSettings]) -> str:
    if payment_settings and payment_settings.payment_preference in ("online", "cod", "both"):
        return payment_settings.payment_preference
    return "both"


def assemble_order(
    db: Session,
    owner_id: str,
    customer: Customer,
    details: OrderDetails,
    now: Optional[datetime] = None,
    tax_rate_percent: Optional[int] = None,
) -> Result[AssembledOrder]:
    """Create order, line item and payment record as one unit.

    Everything is written inside a savepoint; any failure rolls the whole
    unit back and nothing commercial remains.
    """
    now = now or datetime.now(timezone.utc)
    rate = settings.tax_rate_percent if tax_rate_percent is None else tax_rate_percent

    payment_settings = get_payment_settings(db, owner_id)
    preference = payment_preference(payment_settings)
    product = resolve_order_product(db, owner_id)

    if product is not None and (product.stock or 0) <= 0:
        logger.info(
            "Order rejected, product out of stock",
            extra={"context": {"owner_id": owner_id, "product_id": product.id}},
        )
        return Result.failure(MSG_OUT_OF_STOCK.format(product=product.name), ERROR_OUT_OF_STOCK)

    quantity = details.quantity or 1
    unit_price = product.price if product is not None else 0
    subtotal = unit_price * quantity
    tax = compute_tax(subtotal, rate)
    total = subtotal + tax

    try:
        with db.begin_nested():
            order = Order(
                owner_id=owner_id,
                customer_id=customer.id,
                status="pending",
                payment_status="pending_cod" if preference == "cod" else "unpaid",
                currency=CURRENCY,
                subtotal=subtotal,
                tax=tax,
                total=total,
                customer_name=details.name,
                customer_phone=details.phone,
                customer_email=details.email,
                shipping_address=details.address,
                items_summary=details.items_summary or None,
                invoice_number=f"INV-{int(time.time() * 1000)}",
                created_at=now,
            )
            db.add(order)
            db.flush()

            order.invoice_url = f"{settings.public_base_url.rstrip('/')}/invoices/{order.id}"

            item = OrderItem(
                order_id=order.id,
                product_id=product.id if product is not None else None,
                product_name=product.name if product is not None else PLACEHOLDER_PRODUCT_NAME,
                unit_price=unit_price,
                quantity=quantity,
                line_total=subtotal,
            )
            payment = PaymentRecord(
                order_id=order.id,
                owner_id=owner_id,
                amount=total,
                currency=CURRENCY,
                method="PENDING",
                status="PENDING",
                created_at=now,
            )
            db.add_all([item, payment])
            db.flush()

            increment_usage(db, owner_id, METRIC_ORDERS, now=now)
    except Exception as e:
        logger.error(
            f"Order assembly failed: {e}",
            exc_info=True,
            extra={"context": {"owner_id": owner_id, "customer_id": customer.id}},
        )
        alert_error("Order assembly failed", {"owner_id": owner_id, "customer_id": customer.id, "error": str(e)})
        return Result.failure(str(e), ERROR_ORDER_FAILED)

    logger.info(
        f"Order {order.id} created",
        extra={"context": {"owner_id": owner_id, "customer_id": customer.id, "total": total}},
    )
    return Result.success(AssembledOrder(order=order, item=item, payment=payment, payment_settings=payment_settings))


def format_amount(minor_units: int) -> str:
    return f"{minor_units / 100:.2f}"


def build_upi_link(upi_id: str, order_id: int, total: int) -> str:
    return f"upi://pay?pa={upi_id}&pn=Order{order_id}&am={format_amount(total)}&cu={CURRENCY}"


def compose_payment_message(order: Order, payment_settings: Optional[PaymentSettings]) -> str:
    """Payment options for a freshly created order; invoice link always last."""
    preference = payment_preference(payment_settings)
    has_online = preference in ("online", "both")
    has_cod = preference in ("cod", "both")

    message = (
        "✅ *Order Created Successfully!*\n\n"
        f"Order ID: {order.id}\n"
        f"Total: ₹{format_amount(order.total)}\n\n"
        "*Payment Options:*\n"
    )

    if has_online and payment_settings is not None:
        if payment_settings.razorpay_link:
            message += (
                "\n💳 *Pay Online (Razorpay)*\n"
                f"Click to pay securely: {payment_settings.razorpay_link}\n"
                "✓ Automatic confirmation\n"
            )
        if payment_settings.upi_id:
            message += (
                "\n📱 *Pay via UPI*\n"
                f"UPI ID: {payment_settings.upi_id}\n"
                f"Pay Link: {build_upi_link(payment_settings.upi_id, order.id, order.total)}\n"
            )
            if payment_settings.qr_image_url:
                message += f"QR Code: {payment_settings.qr_image_url}\n"
            message += '⚠️ After payment, reply "I have paid" with screenshot\n'

    if has_cod:
        cod_notes = payment_settings.cod_notes if payment_settings is not None else None
        message += (
            "\n💵 *Cash on Delivery*\n"
            f"{cod_notes or 'Pay when you receive your order'}\n"
            'Reply "COD" to confirm cash on delivery\n'
        )

    message += f"\n📄 Invoice: {order.invoice_url}"
    return message
