from datetime import date, datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

TEMPLATE_DIR = Path(__file__).parent / "templates"


def format_money(value) -> str:
    return f"${float(value or 0):,.2f}"


def format_date(value) -> str:
    if not value:
        return "-"
    if isinstance(value, str):
        value = value[:10]
        try:
            value = date.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime("%b %d, %Y")


def status_label(value) -> str:
    if not value:
        return "Unknown"
    return str(value).replace("_", " ").replace("-", " ").title()


_env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)), autoescape=True)
_env.filters["money"] = format_money
_env.filters["date"] = format_date
_env.filters["status_label"] = status_label


def render(template_name: str, **context) -> str:
    return _env.get_template(template_name).render(**context)
