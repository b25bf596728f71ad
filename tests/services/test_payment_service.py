import datetime
import re

import pytest
from fastapi import HTTPException

from huddle.models import payment as payment_model
from huddle.schemas import event_schemas, payment_schemas
from huddle.services import event_service, payment_service


@pytest.fixture
def organizer(make_user):
    return make_user("organizer")


@pytest.fixture
def event(db, organizer):
    return event_service.create_event(
        db,
        event_schemas.EventCreate(
            title="Padel Night",
            date=datetime.datetime(2030, 1, 10, 20, 0),
            location="Club",
            price=15,
            currency="EUR",
            pricing={"individual": 20, "team_leader": 10, "team_member": 12, "female_price": 8},
        ),
        organizer,
    )


def pay(db, event, user, **kwargs):
    return payment_service.create_payment(db, payment_schemas.PaymentCreate(event_id=event.id, **kwargs), user)


class TestCalculateAmount:

    def test_pricing_table_follows_team_role(self, event, make_user):
        player = make_user("player")
        assert payment_service.calculate_amount(event, player, None, None) == 20
        assert payment_service.calculate_amount(event, player, 3, "leader") == 10
        assert payment_service.calculate_amount(event, player, 3, "member") == 12

    def test_gender_price_overrides_the_role_price(self, db, event, make_user):
        player = make_user("player")
        player.gender = "female"
        db.commit()
        assert payment_service.calculate_amount(event, player, 3, "leader") == 8

    def test_unset_gender_price_is_ignored(self, db, event, make_user):
        player = make_user("player")
        player.gender = "male"
        db.commit()
        assert payment_service.calculate_amount(event, player, None, None) == 20

    def test_flat_price_without_pricing_table(self, db, event, make_user):
        event.pricing = None
        db.commit()
        assert payment_service.calculate_amount(event, make_user("player"), None, None) == 15


class TestPayments:

    def test_dummy_payment_completes_immediately(self, db, event, make_user):
        payment = pay(db, event, make_user("player"))
        assert payment.status == payment_model.PaymentStatus.COMPLETED.value
        assert payment.amount == 20
        assert payment.currency == "EUR"
        assert re.match(r"^dummy_\d+_[a-z0-9]{9}$", payment.transaction_id)

    def test_other_methods_stay_pending(self, db, event, make_user):
        payment = pay(db, event, make_user("player"), payment_method="stripe")
        assert payment.status == payment_model.PaymentStatus.PENDING.value
        assert payment.transaction_id is None

    def test_payment_visible_to_payer_and_organizer_only(self, db, event, organizer, make_user):
        player = make_user("player")
        payment = pay(db, event, player)
        assert payment_service.get_payment(db, payment.id, player).id == payment.id
        assert payment_service.get_payment(db, payment.id, organizer).id == payment.id
        with pytest.raises(HTTPException) as excinfo:
            payment_service.get_payment(db, payment.id, make_user("nosy"))
        assert excinfo.value.status_code == 403

    def test_event_payments_are_for_the_organizer(self, db, event, organizer, make_user):
        player = make_user("player")
        pay(db, event, player)
        assert len(payment_service.list_event_payments(db, event.id, organizer)) == 1
        with pytest.raises(HTTPException):
            payment_service.list_event_payments(db, event.id, player)

    def test_refund_only_completed_payments(self, db, event, organizer, make_user):
        player = make_user("player")
        completed = pay(db, event, player)
        pending = pay(db, event, player, payment_method="paypal")

        refunded = payment_service.refund_payment(db, completed.id, organizer)
        assert refunded.status == payment_model.PaymentStatus.REFUNDED.value
        assert refunded.refund_date is not None

        for payment_id in (completed.id, pending.id):
            with pytest.raises(HTTPException) as excinfo:
                payment_service.refund_payment(db, payment_id, organizer)
            assert excinfo.value.status_code == 400

    def test_payer_cannot_refund(self, db, event, make_user):
        player = make_user("player")
        payment = pay(db, event, player)
        with pytest.raises(HTTPException) as excinfo:
            payment_service.refund_payment(db, payment.id, player)
        assert excinfo.value.status_code == 403
