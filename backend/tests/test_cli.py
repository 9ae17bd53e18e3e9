"""Flask CLI commands."""

from tillbook.models import InvoiceCounter, Role, RolePermission, User
from tillbook.services import invoice_service


def test_system_init_is_idempotent(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init", "--with-users"])
    assert first.exit_code == 0, first.output
    second = runner.invoke(args=["system", "init", "--with-users"])
    assert second.exit_code == 0, second.output

    assert {r.name for r in db_session.query(Role).all()} == {"admin", "manager", "cashier"}
    assert db_session.query(User).count() == 3
    assert db_session.query(InvoiceCounter).count() == 1


def test_invoices_reset(app, db_session, store_location):
    invoice_service.next_invoice_number(store_location)
    invoice_service.next_invoice_number(store_location)
    db_session.commit()

    runner = app.test_cli_runner()
    listing = runner.invoke(args=["invoices", "list"])
    assert store_location.key in listing.output

    refused = runner.invoke(args=["invoices", "reset", "--store-id", str(store_location.store_id)])
    assert refused.exit_code != 0

    ok = runner.invoke(args=["invoices", "reset", "--store-id", str(store_location.store_id), "--value", "1", "--yes"])
    assert ok.exit_code == 0, ok.output
    assert invoice_service.get_current_counter(store_location) == 1


def test_perms_grant(app, db_session, setup_roles):
    runner = app.test_cli_runner()
    ok = runner.invoke(args=["perms", "grant", "cashier", "cancel_sale"])
    assert ok.exit_code == 0, ok.output

    role = db_session.query(Role).filter_by(name="cashier").one()
    assert db_session.query(RolePermission).filter_by(role_id=role.id, permission_code="CANCEL_SALE").count() == 1

    unknown = runner.invoke(args=["perms", "grant", "cashier", "LAUNCH_ROCKETS"])
    assert unknown.exit_code != 0
