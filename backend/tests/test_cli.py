from datetime import timedelta

from stockdesk.extensions import db
from stockdesk.models import Product, User
from stockdesk.services.auth_service import get_user_by_email
from stockdesk.services.recycle_bin_service import soft_delete_record
from stockdesk.time_utils import utcnow

from conftest import TEST_PASSWORD


def test_system_init_creates_admin_once(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "init", "--admin-email", "boss@stockdesk.test"])
    assert "PASS Created admin user: boss@stockdesk.test" in result.output

    result = runner.invoke(args=["system", "init"])
    assert "Using existing admin" in result.output
    assert db_session.query(User).count() == 1


def test_users_create_suspend_unsuspend(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=[
        "users", "create", "--email", "joao@stockdesk.test", "--password", TEST_PASSWORD, "--role", "user",
    ])
    assert "PASS Created user" in result.output

    result = runner.invoke(args=["users", "create", "--email", "weak@stockdesk.test", "--password", "weak"])
    assert "FAIL Password validation failed" in result.output

    runner.invoke(args=["users", "suspend", "joao@stockdesk.test", "--reason", "Unpaid"])
    user = get_user_by_email("joao@stockdesk.test")
    assert user.is_suspended
    assert user.suspended_reason == "Unpaid"

    runner.invoke(args=["users", "unsuspend", "joao@stockdesk.test"])
    db.session.refresh(user)
    assert not user.is_suspended

    result = runner.invoke(args=["users", "suspend", "ghost@stockdesk.test"])
    assert "FAIL User 'ghost@stockdesk.test' not found" in result.output


def test_notifications_check_command(app, make_product):
    make_product("CLI-LOW", stock=0, min_stock=4)

    result = app.test_cli_runner().invoke(args=["notifications", "check"])
    assert "created 1 stock / 0 order notifications" in result.output


def test_purge_recycle_bin_command(app, make_product):
    product = make_product("CLI-OLD")
    soft_delete_record("products", product.id)
    row = db.session.query(Product).filter_by(id=product.id).one()
    row.deleted_at = utcnow() - timedelta(days=45)
    db.session.commit()

    result = app.test_cli_runner().invoke(args=["maintenance", "purge-recycle-bin"])
    assert "Deleted 1 products" in result.output
    assert db.session.query(Product).count() == 0
