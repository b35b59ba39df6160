from decimal import Decimal

from conftest import add_cart, make_user
from crafthub.extensions import db
from crafthub.model import CheckoutOrder, Template, User
from crafthub.services import checkout_service


def test_import_templates_from_csv(app, ctx, tmp_path):
    path = tmp_path / "catalog.csv"
    path.write_text(
        " ID ,Title,Category,Price\n"
        "001,Portfolio,personal,12.5\n"
        "002,Landing,business,0\n"
        ",Orphan,misc,3\n"
    )

    result = app.test_cli_runner().invoke(args=["import-templates", str(path)])

    assert result.exit_code == 0, result.output
    assert "2 templates imported" in result.output
    tpl = db.session.get(Template, "001")
    assert tpl.title == "Portfolio"
    assert tpl.price == Decimal("12.50")
    assert Template.query.count() == 2


def test_import_templates_updates_existing(app, ctx, tmp_path):
    path = tmp_path / "catalog.csv"
    path.write_text("id,title,price\nt1,Old,1\n")
    runner = app.test_cli_runner()
    runner.invoke(args=["import-templates", str(path)])

    path.write_text("id,title,price\nt1,New,2\n")
    runner.invoke(args=["import-templates", str(path)])

    db.session.expire_all()
    tpl = db.session.get(Template, "t1")
    assert (tpl.title, tpl.price) == ("New", Decimal("2.00"))


def test_import_templates_requires_columns(app, ctx, tmp_path):
    path = tmp_path / "catalog.csv"
    path.write_text("name,price\nx,1\n")
    result = app.test_cli_runner().invoke(args=["import-templates", str(path)])
    assert result.exit_code != 0
    assert "missing columns: id, title" in result.output


def test_create_admin(app, ctx):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["create-admin", "--username", "root", "--email", "Root@Example.com",
                                 "--password", "pw123456"])
    assert "Admin created" in result.output
    admin = User.query.filter_by(email="root@example.com").one()
    assert admin.role == "admin"
    assert admin.is_verified

    result = runner.invoke(args=["create-admin", "--username", "r2", "--email", "root@example.com",
                                 "--password", "x"])
    assert "Email already exists" in result.output
    assert User.query.count() == 1


def test_reconcile_order_command(app, ctx, gateway):
    user = make_user()
    add_cart(user, ("t1", 10))
    order_id = checkout_service.create_order(user)["order_id"]
    order = CheckoutOrder.query.filter_by(gateway_order_id=order_id).one()
    order.status = "capturing"
    db.session.commit()
    runner = app.test_cli_runner()

    result = runner.invoke(args=["reconcile-order", order_id])

    assert result.exit_code == 0, result.output
    assert f"{order_id}: captured" in result.output
    db.session.expire_all()
    assert [p.template_id for p in user.purchases] == ["t1"]

    result = runner.invoke(args=["reconcile-order", "UNKNOWN"])
    assert result.exit_code != 0
    assert "checkout order not found" in result.output
