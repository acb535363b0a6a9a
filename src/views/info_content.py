# Static store pages shown on the info screen, as Markdown.

from utils.pure import (
    DISCOUNT_PERCENTAGE,
    DISCOUNT_THRESHOLD,
    FREE_SHIPPING_ORDER_LIMIT,
    SHIPPING_FEE,
)

CONTACT_EMAIL = "trustylads@gmail.com"
CONTACT_PHONE = "+91 6369360104"

FAQ = [
    (
        "Orders & Payment",
        [
            (
                "How do I place an order?",
                "Browse the shop, add items to your cart, and proceed to checkout. "
                "Orders are paid with Cash on Delivery.",
            ),
            (
                "Can I cancel my order?",
                "Yes, as long as it hasn't shipped. Open **Track Order**, look up your "
                "order ID and press **Cancel Order**. Shipped, delivered or already "
                "cancelled orders can't be cancelled.",
            ),
            (
                "Do I need an account to cancel?",
                "No. Guests confirm a cancellation with the email or phone number used "
                "for the order.",
            ),
        ],
    ),
    (
        "Shipping & Delivery",
        [
            (
                "How much is shipping?",
                f"Signed-in customers ship free on their first {FREE_SHIPPING_ORDER_LIMIT} "
                f"orders. After that, and for guest orders, shipping is ₹{SHIPPING_FEE}.",
            ),
            (
                "How long does delivery take?",
                "Usually 4-7 business days, depending on your location.",
            ),
            (
                "How can I track my order?",
                "Use **Track Order** with your order ID, or tick *Search by tracking ID* "
                "and enter the courier's tracking number.",
            ),
        ],
    ),
    (
        "Returns & Refunds",
        [
            (
                "What is your return policy?",
                "Returns are accepted within 7 days of delivery for unused items in their "
                "original packaging.",
            ),
            (
                "How long does a refund take?",
                "Refunds are processed within 5-7 business days after we receive the return.",
            ),
            (
                "What if my product arrives damaged?",
                "Contact us within 48 hours of delivery with photos and we'll arrange a "
                "replacement or refund.",
            ),
        ],
    ),
]


def faq_markdown() -> str:
    md = "# Frequently Asked Questions\n"
    for section, entries in FAQ:
        md += f"\n## {section}\n"
        for question, answer in entries:
            md += f"\n### {question}\n\n{answer}\n"
    return md


SHIPPING_POLICY = f"""\
# Shipping Policy

## Shipping charges

- Free shipping on your first {FREE_SHIPPING_ORDER_LIMIT} orders when signed in.
- ₹{SHIPPING_FEE} flat rate on every other order.
- Orders of ₹{DISCOUNT_THRESHOLD:,} or more get {DISCOUNT_PERCENTAGE}% off the subtotal.

## Delivery times

| Location | Estimated delivery |
| :--- | :---: |
| Major cities | 2-3 business days |
| Other locations | 5-7 business days |

Orders are processed within 1-2 business days. You get a tracking ID once the
order ships.

## Cancellation

Orders can be cancelled until they ship. Use **Track Order** to cancel.
"""

ABOUT = """\
# About TrustyLads

TrustyLads sells shirts, watches and accessories for men, shipped across India.

We check every product before it ships, keep prices fair, and pay on delivery so
you only pay for what arrives.
"""

CONTACT = f"""\
# Contact Us

| Channel | Details |
| :--- | :--- |
| Email | {CONTACT_EMAIL} |
| Phone / WhatsApp | {CONTACT_PHONE} |
| Hours | Monday to Saturday, 9 AM to 6 PM IST |

Include your order ID when asking about an order.
"""
