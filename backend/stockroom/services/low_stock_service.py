"""
Low-stock evaluation, reporting and alert delivery.

EFFECTIVE THRESHOLD: product override, else category default, else the
global LOW_STOCK_DEFAULT_THRESHOLD (the same constant categories default to).

CLASSIFICATION: OUT when stock is 0, LOW when 0 < stock <= threshold,
NORMAL otherwise. A product is reported when stock <= threshold, so OUT
items are reported too.

Alert delivery is read-only with respect to inventory: a failed send is
logged and counted, never rolled into a stock transaction.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from flask import current_app
from markupsafe import Markup

from ..config import global_default_threshold
from ..errors import NotFoundError
from ..extensions import db
from ..models import Product, User
from ..principal import ROLE_ADMIN
from stockroom.time_utils import to_utc_z
from .mail_service import MailDeliveryError, get_mailer

STOCK_OUT = "OUT"
STOCK_LOW = "LOW"
STOCK_NORMAL = "NORMAL"

ALERT_SUBJECT = "Urgent: Low Stock Alert in Inventory System"

_EMAIL_RE = re.compile(r".+@.+\..+")


@dataclass(frozen=True)
class AlertMessage:
    subject: str
    html: str
    text: str


@dataclass(frozen=True)
class AlertRecipient:
    user_id: int
    name: str
    email: str


def effective_threshold(product: Product, default: int | None = None) -> int:
    if product.low_stock_threshold is not None:
        return product.low_stock_threshold
    category = product.category
    if category is not None and category.default_low_stock_threshold is not None:
        return category.default_low_stock_threshold
    return global_default_threshold() if default is None else default


def classify_stock(product: Product, default: int | None = None) -> str:
    if product.stock <= 0:
        return STOCK_OUT
    if product.stock <= effective_threshold(product, default):
        return STOCK_LOW
    return STOCK_NORMAL


def is_low_stock(product: Product, default: int | None = None) -> bool:
    return classify_stock(product, default) != STOCK_NORMAL


def _low_stock_entry(product: Product, threshold: int) -> dict:
    return {
        "product_id": product.id,
        "name": product.name,
        "sku": product.sku,
        "current_stock": product.stock,
        "threshold": threshold,
        "category": product.category.name if product.category else "N/A",
        "bin_location": product.bin_location or "N/A",
        "status": classify_stock(product, threshold),
        "last_updated": to_utc_z(product.updated_at),
    }


def list_low_stock_items() -> list[dict]:
    """Every product at or below its effective threshold, in name order."""
    default = global_default_threshold()
    products = db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()

    items = []
    for product in products:
        if is_low_stock(product, default):
            items.append(_low_stock_entry(product, effective_threshold(product, default)))
    return items


def low_stock_count() -> int:
    return len(list_low_stock_items())


_CELL = Markup('<td style="padding: 8px; border-bottom: 1px solid #ddd;">{}</td>')
_STOCK_CELL = Markup(
    '<td style="padding: 8px; border-bottom: 1px solid #ddd; color: #d9534f; font-weight: bold;">{}</td>'
)
_HEADINGS = ("Product Name", "SKU", "Current Stock", "Threshold", "Category", "Bin Location")


def _render_rows(items: list[dict]) -> Markup:
    rows = Markup("")
    for item in items:
        rows += (
            Markup("<tr>")
            + _CELL.format(item["name"])
            + _CELL.format(item["sku"])
            + _STOCK_CELL.format(item["current_stock"])
            + _CELL.format(item["threshold"])
            + _CELL.format(item["category"])
            + _CELL.format(item["bin_location"])
            + Markup("</tr>")
        )
    return rows


def compose_alert(items: list[dict], recipient_name: str | None = None, subject: str | None = None) -> AlertMessage:
    """
    Build the alert mail for a set of low-stock items.

    Every interpolated value is HTML-escaped.
    """
    heading_cells = Markup("").join(
        Markup('<th style="padding: 8px; text-align: left; border-bottom: 1px solid #ddd;">{}</th>').format(h)
        for h in _HEADINGS
    )
    greeting = Markup("<p>Dear {},</p>").format(recipient_name) if recipient_name else Markup("")

    html = (
        Markup('<div style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">')
        + Markup('<h2 style="color: #d9534f;">Low Stock Alert!</h2>')
        + greeting
        + Markup("<p>The following products are currently running low on stock:</p>")
        + Markup('<table style="width: 100%; border-collapse: collapse;">')
        + Markup('<thead><tr style="background-color: #f2f2f2;">')
        + heading_cells
        + Markup("</tr></thead><tbody>")
        + _render_rows(items)
        + Markup("</tbody></table>")
        + Markup('<p style="margin-top: 20px;">Please take necessary action to restock these items.</p>')
        + Markup("<p>Regards,<br/>Your Inventory System</p></div>")
    )

    text_lines = []
    if recipient_name:
        text_lines.append(f"Dear {recipient_name},")
    text_lines.append("The following products are currently running low on stock:")
    for item in items:
        text_lines.append(
            f"- {item['name']} (SKU {item['sku']}): stock {item['current_stock']}, "
            f"threshold {item['threshold']}, category {item['category']}, bin {item['bin_location']}"
        )

    return AlertMessage(subject=subject or ALERT_SUBJECT, html=str(html), text="\n".join(text_lines))


def list_alert_recipients() -> list[AlertRecipient]:
    """Active admins who opted in and have a usable alert address."""
    users = (
        db.session.query(User)
        .filter_by(role=ROLE_ADMIN, receive_low_stock_alerts=True, is_active=True)
        .order_by(User.id.asc())
        .all()
    )
    recipients = []
    for user in users:
        address = (user.alert_email or "").strip()
        if not address or not _EMAIL_RE.fullmatch(address):
            current_app.logger.warning(
                "Skipping low-stock alert for user id=%s: invalid or missing alert email", user.id
            )
            continue
        recipients.append(AlertRecipient(user_id=user.id, name=user.name, email=address))
    return recipients


def _deliver(items: list[dict], recipients: list[AlertRecipient], mailer, subject: str | None = None) -> list[dict]:
    results = []
    for recipient in recipients:
        message = compose_alert(items, recipient_name=recipient.name, subject=subject)
        try:
            mailer.send(recipient.email, message.subject, message.html, message.text)
        except MailDeliveryError as exc:
            current_app.logger.error("Failed to send low-stock alert to %s: %s", recipient.email, exc)
            results.append({"email": recipient.email, "status": "failed", "error": str(exc)})
            continue
        results.append({"email": recipient.email, "status": "sent"})
    return results


def _summary(message: str, items: list[dict], results: list[dict]) -> dict:
    return {
        "message": message,
        "low_stock_count": len(items),
        "sent_count": sum(1 for r in results if r["status"] == "sent"),
        "failed_count": sum(1 for r in results if r["status"] == "failed"),
        "details": results,
    }


def send_low_stock_alerts(mailer=None) -> dict:
    """
    Daily job body: mail the full low-stock list to every subscribed admin.
    """
    items = list_low_stock_items()
    if not items:
        return _summary("No low stock items found. No alerts sent.", items, [])

    recipients = list_alert_recipients()
    if not recipients:
        return _summary("No administrators subscribed to low stock alerts.", items, [])

    results = _deliver(items, recipients, mailer or get_mailer())
    current_app.logger.info(
        "Low-stock alert run: %s item(s), %s recipient(s)", len(items), len(recipients)
    )
    return _summary("Low stock alert process completed.", items, results)


def send_product_alert(product_id: int, mailer=None) -> dict:
    """
    Mail a single product's low-stock alert to every subscribed admin.

    Raises:
        NotFoundError: product does not exist
        MailDeliveryError: recipients existed but every send failed
    """
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product not found", {"product_id": product_id})

    threshold = effective_threshold(product)
    if not is_low_stock(product, threshold):
        return _summary(
            f"Product {product.name} is not currently below its low stock threshold "
            f"({product.stock} > {threshold}). No alert sent.",
            [],
            [],
        )

    items = [_low_stock_entry(product, threshold)]
    recipients = list_alert_recipients()
    if not recipients:
        return _summary("No administrators subscribed to low stock alerts.", items, [])

    results = _deliver(
        items,
        recipients,
        mailer or get_mailer(),
        subject=f"Urgent: Low Stock Alert for {product.name}",
    )
    summary = _summary(
        f"Low stock alert sent for product {product.name}.",
        items,
        results,
    )
    if summary["sent_count"] == 0:
        raise MailDeliveryError(
            "No alerts were successfully sent for this product. "
            "Check email service configuration or recipient settings.",
            {"details": results},
        )
    return summary
