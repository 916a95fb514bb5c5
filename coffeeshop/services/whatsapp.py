"""WhatsApp ordering is a deep link; nothing is sent from the server."""
from decimal import Decimal, ROUND_HALF_UP
from urllib.parse import quote

WA_BASE = "https://wa.me"

# characters encodeURIComponent leaves alone
_URI_COMPONENT_SAFE = "-_.!~*'()"


def format_price(currency: str, amount) -> str:
    """``Rp 25.000`` style: dot thousands separator, comma decimals (max 3)."""
    value = Decimal(str(amount or 0)).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    whole, _, frac = f"{abs(value):f}".partition(".")
    grouped = f"{int(whole):,}".replace(",", ".")
    frac = frac.rstrip("0")
    text = f"{grouped},{frac}" if frac else grouped
    return f"{currency} {sign}{text}"


def build_order_message(store_name: str, currency: str, customer_name: str, customer_phone: str,
                        items: list[dict]) -> str:
    lines = [
        f"*Pesanan Baru dari {store_name}*",
        "",
        "*Data Pemesan:*",
        f"Nama: {customer_name}",
        f"No. HP: {customer_phone}",
        "",
        "*Detail Pesanan:*",
    ]
    total = Decimal("0")
    for it in items:
        subtotal = Decimal(str(it["price"])) * int(it["quantity"])
        total += subtotal
        lines.append(
            f"• {it['coffee_name']} ({it.get('variant_size') or '-'}) x{it['quantity']} - {format_price(currency, subtotal)}"
        )
    lines.append("")
    lines.append(f"*Total: {format_price(currency, total)}*")
    lines.append("")
    lines.append("Terima kasih atas pesanannya! 🙏")
    return "\n".join(lines)


def whatsapp_link(number: str, message: str) -> str:
    return f"{WA_BASE}/{number}?text={quote(message, safe=_URI_COMPONENT_SAFE)}"
