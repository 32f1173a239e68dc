"""Тесты жизненного цикла записи на уровне сервиса"""
from datetime import date, datetime, time

import pytest
from sqlalchemy import update

from groombook.errors import ConflictError, NotFoundError, TransitionError, ValidationError
from groombook.models import Customer
from groombook.services.schedule import REASON_BOOKED, ScheduleService

WEDNESDAY = date(2026, 10, 21)


def _customer(db, phone="01012345678"):
    return db.query(Customer).filter(Customer.phone == phone).one()


class TestCreateBooking:
    def test_public_booking_is_pending(self, make_booking):
        booking = make_booking("10:00")
        assert booking.status == "pending"
        assert booking.deposit_status == "none"
        assert booking.duration_minutes == 60
        assert booking.customer_phone == "01012345678"

    def test_overlap_is_conflict(self, make_booking):
        make_booking("10:00")
        with pytest.raises(ConflictError):
            make_booking("10:30", phone="010-2222-3333", service="nails")

    def test_touching_booking_is_allowed(self, make_booking):
        make_booking("10:00")
        booking = make_booking("11:00", phone="010-2222-3333")
        assert booking.id

    def test_cancelled_booking_frees_slot(self, make_booking, booking_service):
        first = make_booking("10:00")
        with pytest.raises(ConflictError):
            make_booking("10:00", phone="010-2222-3333")
        booking_service.cancel(first.id)
        assert make_booking("10:00", phone="010-2222-3333").status == "pending"

    def test_past_time_rejected(self, make_booking):
        with pytest.raises(ValidationError) as exc:
            make_booking("10:00", date_str="2026-10-16")
        assert exc.value.field == "time"

    def test_before_opening_rejected(self, make_booking):
        with pytest.raises(ValidationError):
            make_booking("08:30")

    def test_exceeding_close_rejected(self, make_booking):
        with pytest.raises(ValidationError):
            make_booking("17:00", service="full")

    def test_closed_day_rejected(self, make_booking):
        with pytest.raises(ValidationError) as exc:
            make_booking("10:00", date_str="2026-10-25")
        assert "не работает" in exc.value.message

    def test_inactive_service(self, make_booking):
        with pytest.raises(NotFoundError):
            make_booking("10:00", service="archived")

    def test_empty_name(self, make_booking):
        with pytest.raises(ValidationError) as exc:
            make_booking("10:00", name="   ")
        assert exc.value.field == "customer_name"

    @pytest.mark.parametrize("phone", ["12345", "010-1234-5678-999", "телефон"])
    def test_invalid_phone(self, make_booking, phone):
        with pytest.raises(ValidationError) as exc:
            make_booking("10:00", phone=phone)
        assert exc.value.field == "customer_phone"

    def test_blocked_slot_rejected_for_customer(self, db, shop, make_booking):
        shop.blocked_slots = {"2026-10-21": ["14:00"]}
        db.commit()
        with pytest.raises(ValidationError):
            make_booking("14:00")

    def test_time_off_slot_grid_rejected(self, db, shop, make_booking):
        shop.blocked_slots = {"2026-10-21": ["14:00"]}
        db.commit()
        for time_str in ("14:01", "09:15"):
            with pytest.raises(ValidationError) as exc:
                make_booking(time_str)
            assert exc.value.field == "time"

    def test_force_open_allows_second_booking(self, db, shop, make_booking):
        make_booking("10:00", manual=True)
        shop.force_open_slots = {"2026-10-21": ["10:00"]}
        db.commit()
        second = make_booking("10:00", phone="010-2222-3333")
        assert second.status == "pending"


class TestManualBooking:
    def test_manual_booking_is_confirmed(self, make_booking):
        assert make_booking("10:00", manual=True).status == "confirmed"

    def test_manual_booking_ignores_blocked_slot(self, db, shop, make_booking):
        shop.blocked_slots = {"2026-10-21": ["14:00"]}
        db.commit()
        assert make_booking("14:00", manual=True).status == "confirmed"

    def test_manual_booking_off_slot_grid(self, make_booking):
        booking = make_booking("09:15", manual=True)
        assert booking.booking_time == time(9, 15)

    def test_manual_booking_still_checks_overlap(self, make_booking):
        make_booking("10:00")
        with pytest.raises(ConflictError):
            make_booking("10:30", phone="010-2222-3333", manual=True)


class TestCustomerUpsert:
    def test_first_visit_flag(self, make_booking):
        assert make_booking("10:00").is_first_visit
        assert not make_booking("12:00").is_first_visit

    def test_visit_count_not_incremented_on_create(self, db, make_booking):
        make_booking("10:00")
        assert _customer(db).visit_count == 0

    def test_pet_profile_merge(self, db, make_booking):
        make_booking("10:00", pet_name="Бори", pet_breed="Мальтийская болонка")
        make_booking("12:00", pet_breed="Пудель", pet_weight="4.5")
        customer = _customer(db)
        assert customer.pet_name == "Бори"
        assert customer.pet_breed == "Пудель"
        assert customer.pet_weight == "4.5"

    def test_memo_appended_to_notes(self, db, make_booking):
        make_booking("10:00", memo="Боится фена")
        make_booking("12:00", memo="Аллергия на шампунь")
        make_booking("14:00")
        notes = _customer(db).notes
        assert [n.text for n in notes] == ["Боится фена", "Аллергия на шампунь"]
        assert notes[0].created_at == datetime(2026, 10, 19, 8, 0)

    def test_customers_are_per_shop_phone(self, db, make_booking):
        make_booking("10:00", phone="010 1234 5678")
        make_booking("12:00", phone="01012345678")
        assert db.query(Customer).count() == 1


class TestDurationSnapshot:
    def test_editing_service_does_not_move_existing_booking(self, db, shop, clock, services, make_booking):
        make_booking("10:00")
        services["trim"].duration_minutes = 120
        db.commit()

        verdict = ScheduleService(db, clock).check_slot(shop, WEDNESDAY, time(11, 0), 30)
        assert verdict.available

        verdict = ScheduleService(db, clock).check_slot(shop, WEDNESDAY, time(10, 30), 30)
        assert verdict.reason == REASON_BOOKED


class TestTransitions:
    def test_approve(self, make_booking, booking_service):
        booking = make_booking("10:00")
        assert booking_service.approve(booking.id).status == "confirmed"

    def test_approve_twice_fails(self, make_booking, booking_service):
        booking = make_booking("10:00")
        booking_service.approve(booking.id)
        with pytest.raises(TransitionError):
            booking_service.approve(booking.id)

    def test_reject_then_cancel_fails(self, make_booking, booking_service):
        booking = make_booking("10:00")
        booking_service.reject(booking.id)
        with pytest.raises(TransitionError):
            booking_service.cancel(booking.id)

    def test_request_deposit_sets_deadline(self, make_booking, booking_service):
        booking = make_booking("10:00", manual=True)
        booking = booking_service.request_deposit(booking.id)
        assert booking.deposit_status == "waiting"
        assert booking.deposit_deadline == datetime(2026, 10, 19, 10, 0)

    def test_confirm_deposit_keeps_status(self, make_booking, booking_service):
        booking = make_booking("10:00")
        booking_service.request_deposit(booking.id)
        booking = booking_service.confirm_deposit(booking.id)
        assert booking.deposit_status == "paid"
        assert booking.status == "pending"

    def test_admin_confirm_deposit(self, make_booking, booking_service):
        booking = booking_service.admin_confirm_deposit(make_booking("10:00").id)
        assert booking.status == "confirmed"
        assert booking.deposit_status == "paid"

    def test_deposit_on_cancelled_booking(self, make_booking, booking_service):
        booking = make_booking("10:00")
        booking_service.cancel(booking.id)
        with pytest.raises(TransitionError):
            booking_service.request_deposit(booking.id)

    def test_mark_reminded(self, make_booking, booking_service):
        booking = make_booking("10:00", manual=True)
        booking = booking_service.mark_reminded(booking.id)
        assert booking.reminder_sent
        assert booking.reminder_sent_at == datetime(2026, 10, 19, 8, 0)

    def test_unknown_booking(self, booking_service):
        with pytest.raises(NotFoundError):
            booking_service.approve(999)


class TestVisitCompletion:
    def test_complete_twice_counts_once(self, db, booking_service, make_past_booking):
        booking = make_past_booking()
        assert booking_service.complete_visit(booking.id)
        assert not booking_service.complete_visit(booking.id)

        customer = _customer(db, "01099998888")
        assert customer.visit_count == 1
        assert customer.last_visit == datetime(2026, 10, 19, 8, 0)
        assert customer.first_visit_date == date(2026, 10, 16)

    def test_counter_incremented_in_database(self, db, booking_service, make_past_booking):
        booking = make_past_booking()
        customer = _customer(db, "01099998888")
        assert customer.visit_count == 0

        # Счётчик изменён в базе мимо загруженного объекта
        db.execute(update(Customer.__table__).where(Customer.id == customer.id).values(visit_count=5))

        assert booking_service.complete_visit(booking.id)
        db.expire_all()
        assert _customer(db, "01099998888").visit_count == 6

    def test_sweep_counts_each_booking_of_one_customer(self, db, booking_service, make_past_booking):
        make_past_booking(day=date(2026, 10, 15))
        make_past_booking(day=date(2026, 10, 16))
        assert booking_service.sweep_completed() == 2

        customer = _customer(db, "01099998888")
        assert customer.visit_count == 2
        assert customer.first_visit_date == date(2026, 10, 15)

    def test_future_booking_not_completed(self, booking_service, make_booking):
        booking = make_booking("10:00", manual=True)
        assert not booking_service.complete_visit(booking.id)

    def test_pending_booking_not_completed(self, db, booking_service, make_past_booking):
        booking = make_past_booking()
        booking.status = "pending"
        db.commit()
        assert not booking_service.complete_visit(booking.id)

    def test_reject_completed_visit_decrements(self, db, booking_service, make_past_booking):
        booking = make_past_booking()
        booking_service.complete_visit(booking.id)
        booking = booking_service.reject(booking.id)

        assert not booking.visit_completed
        assert _customer(db, "01099998888").visit_count == 0

    def test_decrement_never_below_zero(self, db, booking_service, make_past_booking):
        booking = make_past_booking()
        booking_service.complete_visit(booking.id)
        customer = _customer(db, "01099998888")
        customer.visit_count = 0
        db.commit()

        booking_service.cancel(booking.id)
        assert _customer(db, "01099998888").visit_count == 0

    def test_sweep_counts_only_passed_confirmed(self, db, clock, booking_service, make_past_booking, make_booking):
        make_past_booking(day=date(2026, 10, 15))
        make_past_booking(day=date(2026, 10, 16), customer_phone="01077776666")
        today = make_booking("10:00", date_str="2026-10-19", manual=True)

        assert booking_service.sweep_completed() == 2
        assert booking_service.sweep_completed() == 0

        clock.advance(hours=3)
        assert booking_service.sweep_completed() == 1
        db.refresh(today)
        assert today.visit_completed

    def test_list_bookings_sweeps(self, shop, booking_service, make_past_booking):
        make_past_booking()
        bookings = booking_service.list_bookings(shop.id)
        assert bookings[0].visit_completed


class TestReschedule:
    def test_move_within_own_range(self, make_booking, booking_service):
        booking = make_booking("10:00")
        moved = booking_service.reschedule(booking.id, time_str="10:30")
        assert moved.booking_time == time(10, 30)

    def test_conflict_with_other_booking(self, make_booking, booking_service):
        booking = make_booking("10:00")
        make_booking("12:00", phone="010-2222-3333")
        with pytest.raises(ConflictError):
            booking_service.reschedule(booking.id, time_str="11:30")

    def test_change_service_snapshots_new_duration(self, make_booking, booking_service, services):
        booking = make_booking("10:00")
        make_booking("12:00", phone="010-2222-3333")
        moved = booking_service.reschedule(booking.id, service_id=services["full"].id)
        assert moved.duration_minutes == 120
        assert moved.service_id == services["full"].id

    def test_longer_service_conflicts(self, make_booking, booking_service, services):
        booking = make_booking("10:00")
        make_booking("11:30", phone="010-2222-3333", service="nails")
        with pytest.raises(ConflictError):
            booking_service.reschedule(booking.id, service_id=services["full"].id)

    def test_move_to_other_date(self, make_booking, booking_service):
        booking = make_booking("10:00")
        moved = booking_service.reschedule(booking.id, date_str="2026-10-22", time_str="15:00")
        assert moved.booking_date == date(2026, 10, 22)
        assert moved.booking_time == time(15, 0)

    def test_resets_completed_visit(self, db, booking_service, make_past_booking):
        booking = make_past_booking()
        booking_service.complete_visit(booking.id)
        moved = booking_service.reschedule(booking.id, date_str="2026-10-22")

        assert not moved.visit_completed
        assert _customer(db, "01099998888").visit_count == 0

    def test_cancelled_cannot_move(self, make_booking, booking_service):
        booking = make_booking("10:00")
        booking_service.cancel(booking.id)
        with pytest.raises(TransitionError):
            booking_service.reschedule(booking.id, time_str="12:00")

    def test_nothing_to_change(self, make_booking, booking_service):
        with pytest.raises(ValidationError):
            booking_service.reschedule(make_booking("10:00").id)


class TestListings:
    def test_list_tomorrow_only_confirmed(self, shop, make_booking, booking_service):
        confirmed = make_booking("15:00", date_str="2026-10-20", manual=True)
        make_booking("10:00", date_str="2026-10-20", phone="010-2222-3333")
        make_booking("10:00", manual=True, phone="010-4444-5555")

        assert [b.id for b in booking_service.list_tomorrow(shop.id)] == [confirmed.id]

    def test_list_bookings_ordered(self, shop, make_booking, booking_service):
        late = make_booking("15:00")
        early = make_booking("10:00", date_str="2026-10-20", phone="010-2222-3333")
        mid = make_booking("09:00", phone="010-4444-5555")
        assert [b.id for b in booking_service.list_bookings(shop.id)] == [early.id, mid.id, late.id]

    def test_update_customer(self, make_booking, booking_service):
        booking = make_booking("10:00")
        updated = booking_service.update_customer(booking.id, customer_name="Ли Суа", customer_phone="010-9999-0000")
        assert updated.customer_name == "Ли Суа"
        assert updated.customer_phone == "01099990000"
