"""
HTML and plain-text bodies for the emails PizzaHub sends.
"""
from html import escape
from typing import Iterable

STATUS_COLORS = {
    "Order Received": "#4CAF50",
    "In the Kitchen": "#FF9800",
    "Sent to Delivery": "#2196F3",
    "Delivered": "#8BC34A",
}

_BASE_STYLE = """
    body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
    .container { max-width: 600px; margin: 0 auto; padding: 20px; }
    .header { background: #667eea; color: white; padding: 30px; text-align: center; border-radius: 10px 10px 0 0; }
    .content { background: #f9f9f9; padding: 30px; border-radius: 0 0 10px 10px; }
    .button { display: inline-block; padding: 12px 30px; background: #667eea; color: white; text-decoration: none; border-radius: 5px; margin: 20px 0; }
"""


def _page(title: str, body: str, extra_style: str = "") -> str:
    return f"""<!DOCTYPE html>
<html>
<head><style>{_BASE_STYLE}{extra_style}</style></head>
<body>
  <div class="container">
    <div class="header"><h1>{title}</h1></div>
    <div class="content">{body}</div>
  </div>
</body>
</html>"""


def verification_text(name: str, url: str) -> str:
    return (
        f"Welcome to PizzaHub, {name}!\n\n"
        f"Please verify your email address by opening the link below:\n\n{url}\n\n"
        "If you did not create an account, please ignore this email. "
        "This link will expire in 24 hours."
    )


def verification_email(name: str, url: str) -> str:
    url = escape(url)
    return _page("Welcome to PizzaHub!", f"""
      <h2>Hi {escape(name)},</h2>
      <p>Please verify your email address by clicking the button below:</p>
      <p><a href="{url}" class="button">Verify Email</a></p>
      <p style="word-break: break-all;">{url}</p>
      <p>This link will expire in 24 hours.</p>""")


def reset_password_text(url: str) -> str:
    return (
        "You requested a password reset for your PizzaHub account.\n\n"
        f"Please open the link below to reset your password:\n\n{url}\n\n"
        "If you did not request this, please ignore this email. "
        "This link is valid for 1 hour."
    )


def reset_password_email(name: str, url: str) -> str:
    url = escape(url)
    return _page("Reset Your Password", f"""
      <h2>Hi {escape(name)},</h2>
      <p>You requested to reset your password. Click the button below:</p>
      <p><a href="{url}" class="button">Reset Password</a></p>
      <p style="word-break: break-all;">{url}</p>
      <p>This link will expire in 1 hour.</p>""")


def order_status_email(name: str, order_number: str, status: str) -> str:
    color = STATUS_COLORS.get(status, "#667eea")
    return _page("Order Status Update", f"""
      <h2>Hi {escape(name)},</h2>
      <p>Your order <strong>#{escape(order_number)}</strong> status has been updated!</p>
      <p><span class="badge" style="background: {color};">{escape(status)}</span></p>
      <p>Thank you for choosing PizzaHub!</p>""",
        ".badge { display: inline-block; padding: 10px 20px; color: white; border-radius: 20px; font-weight: bold; }")


def low_stock_alert(items: Iterable[dict]) -> str:
    rows = "".join(
        "<tr>"
        f"<td>{escape(str(item['name']))}</td>"
        f"<td>{escape(str(item['category']))}</td>"
        f"<td class=\"low\">{item['quantity']}</td>"
        f"<td>{item['threshold']}</td>"
        "</tr>"
        for item in items
    )
    return _page("Low Stock Alert!", f"""
      <p><strong>Attention!</strong> The following items are running low on stock and need to be restocked soon.</p>
      <table>
        <thead><tr><th>Item Name</th><th>Category</th><th>Current Stock</th><th>Threshold</th></tr></thead>
        <tbody>{rows}</tbody>
      </table>""",
        "table { width: 100%; border-collapse: collapse; } th { background: #667eea; color: white; padding: 12px; text-align: left; } "
        "td { padding: 10px; border: 1px solid #ddd; } .low { color: red; font-weight: bold; }")
