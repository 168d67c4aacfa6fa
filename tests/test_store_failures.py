from sqlalchemy import text


def _get(client, path, ip):
    client.cookies.clear()
    r = client.get(path, headers={"X-Forwarded-For": ip})
    return r.status_code, r.json()


def _sql(app, stmt):
    with app.state.engine.begin() as conn:
        conn.execute(text(stmt))


def test_ledger_read_failure_is_500_for_claim_and_status(app, client):
    _sql(app, "DROP TABLE claims")

    st, js = _get(client, "/claim-coupon", "10.0.0.1")
    assert st == 500 and js == {"message": "Server error"}

    st, js = _get(client, "/status", "10.0.0.1")
    assert st == 500 and js == {"message": "Server error"}


def test_pool_read_failure_is_500(app, client):
    _sql(app, "DROP TABLE coupons")
    st, js = _get(client, "/claim-coupon", "10.0.0.1")
    assert st == 500 and js == {"message": "Server error"}


def test_failed_delete_rolls_back_claim_record(app, client):
    _sql(
        app,
        """
        CREATE TRIGGER block_coupon_delete BEFORE DELETE ON coupons
        BEGIN SELECT RAISE(ABORT, 'delete blocked'); END
        """,
    )

    st, js = _get(client, "/claim-coupon", "10.0.0.1")
    assert st == 500 and js == {"message": "Server error"}

    # nada quedó a medias: sin claim registrado y el cupón sigue en el pool
    st, js = _get(client, "/status", "10.0.0.1")
    assert st == 200 and js == {"canClaim": True}

    _sql(app, "DROP TRIGGER block_coupon_delete")
    st, js = _get(client, "/claim-coupon", "10.0.0.1")
    assert st == 200 and js["coupon"] == "DISCOUNT10"
