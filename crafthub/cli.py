# crafthub/cli.py
import os

import click
import pandas as pd
from werkzeug.security import generate_password_hash

from .errors import ServiceError
from .extensions import db
from .model import Template, User
from .services import checkout_service
from .utils.money import round_money

TEMPLATE_COLUMNS = {"id", "title", "description", "category", "price"}


@click.command("create-admin")
@click.option("--username", required=True)
@click.option("--email", required=True)
@click.option("--password", required=True)
def create_admin(username, email, password):
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        click.echo("Email already exists"); return
    u = User(username=username.strip(), email=email, password_hash=generate_password_hash(password),
             role="admin", is_verified=True)
    db.session.add(u); db.session.commit()
    click.echo(f"Admin created: {u.id} {u.email}")


def read_catalog(path: str) -> pd.DataFrame:
    if os.path.splitext(path)[1].lower() in (".xlsx", ".xls"):
        df = pd.read_excel(path, dtype=str)
    else:
        df = pd.read_csv(path, dtype=str)
    # Clean column names (remove extra spaces, any case)
    df.columns = df.columns.str.strip().str.lower()
    missing = {"id", "title"} - set(df.columns)
    if missing:
        raise click.ClickException(f"missing columns: {', '.join(sorted(missing))}")
    return df


def import_catalog(df: pd.DataFrame) -> int:
    count = 0
    for _, row in df.iterrows():
        data = {k: row[k] for k in TEMPLATE_COLUMNS if k in df.columns and not pd.isna(row[k])}
        if "id" not in data:
            continue
        tpl = db.session.get(Template, str(data["id"]).strip()) or Template(id=str(data["id"]).strip())
        tpl.title = str(data.get("title", tpl.title or "")).strip()
        tpl.description = data.get("description", tpl.description)
        tpl.category = data.get("category", tpl.category)
        tpl.price = round_money(data.get("price", tpl.price or 0))
        db.session.add(tpl)
        count += 1
    db.session.commit()
    return count


@click.command("import-templates")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def import_templates(path):
    """Upsert the template catalog from a CSV or Excel file."""
    count = import_catalog(read_catalog(path))
    click.echo(f"{count} templates imported from {path}")


@click.command("reconcile-order")
@click.argument("order_id")
def reconcile_order(order_id):
    """Settle or release a checkout order by asking PayPal for its state."""
    try:
        order = checkout_service.reconcile_order(order_id)
    except ServiceError as e:
        raise click.ClickException(e.message) from e
    click.echo(f"{order.gateway_order_id}: {order.status}")


def register_cli(app):
    app.cli.add_command(create_admin)
    app.cli.add_command(import_templates)
    app.cli.add_command(reconcile_order)
