"""Barrido de carritos abandonados: selección, emisión, envío y contador."""
from datetime import timedelta
from unittest import mock

import pytest
from django.db import DatabaseError
from django.db.models.query import QuerySet

from apps.accounts.models import User
from apps.cart.abandonment import (
    FAILED,
    SENT,
    SKIPPED,
    find_abandoned_carts,
    mark_cart_reminded,
    remind_cart,
    send_abandoned_cart_reminders,
)
from apps.cart.models import Cart
from apps.coupons.models import DiscountCode
from apps.coupons.services import DiscountCodeGenerationError

from .conftest import make_cart, make_product, make_user, make_variant

pytestmark = pytest.mark.django_db


def _reload(cart):
    return Cart.objects.get(pk=cart.pk)


class TestFindAbandonedCarts:
    def test_selects_stale_cart_with_items(self, abandoned_cart, now):
        assert find_abandoned_carts(now=now) == [abandoned_cart]

    def test_recent_cart_not_selected(self, customer, product, now):
        make_cart(customer, lines=[{'product': product}], idle_hours=23, now=now)
        assert find_abandoned_carts(now=now) == []

    def test_capped_cart_not_selected(self, customer, product, now):
        make_cart(customer, lines=[{'product': product}], reminder_count=3, now=now)
        assert find_abandoned_carts(now=now) == []

    def test_guest_cart_not_selected(self, product, now):
        guest = make_user('invitado@example.com', is_guest=True)
        make_cart(guest, lines=[{'product': product}], now=now)
        assert find_abandoned_carts(now=now) == []

    def test_empty_cart_not_selected(self, customer, now):
        make_cart(customer, now=now)
        assert find_abandoned_carts(now=now) == []

    def test_user_without_email_not_selected(self, product, now):
        no_email = User.objects.create_user(username='sin-email', email='')
        make_cart(no_email, lines=[{'product': product}], now=now)
        assert find_abandoned_carts(now=now) == []

    def test_idle_hours_override(self, customer, product, now):
        cart = make_cart(customer, lines=[{'product': product}], idle_hours=5, now=now)
        assert find_abandoned_carts(now=now) == []
        assert find_abandoned_carts(now=now, idle_hours=4) == [cart]

    def test_items_and_names_are_prefetched(self, customer, product, now, django_assert_num_queries):
        variant = make_variant(product, name='')
        make_cart(customer, lines=[{'product': product}, {'variant': variant}], now=now)

        carts = find_abandoned_carts(now=now)
        with django_assert_num_queries(0):
            names = sorted(item.display_name for item in carts[0].items.all())
            email = carts[0].user.email

        assert names == ['Camiseta', 'Camiseta']
        assert email == 'cliente@example.com'

    def test_has_no_side_effects(self, abandoned_cart, now):
        find_abandoned_carts(now=now)
        assert not DiscountCode.objects.exists()
        assert _reload(abandoned_cart).reminder_count == 0


class TestMarkCartReminded:
    def test_increments_and_stamps(self, abandoned_cart, now):
        assert mark_cart_reminded(abandoned_cart, 0, now) is True

        cart = _reload(abandoned_cart)
        assert cart.reminder_count == 1
        assert cart.last_reminder_at == now

    def test_does_not_touch_updated_at(self, abandoned_cart, now):
        mark_cart_reminded(abandoned_cart, 0, now)
        assert _reload(abandoned_cart).updated_at == abandoned_cart.updated_at

    def test_stale_expected_count_is_ignored(self, abandoned_cart, now):
        Cart.objects.filter(pk=abandoned_cart.pk).update(reminder_count=1)

        assert mark_cart_reminded(abandoned_cart, 0, now) is False
        assert _reload(abandoned_cart).reminder_count == 1

    def test_never_exceeds_cap(self, abandoned_cart, now):
        Cart.objects.filter(pk=abandoned_cart.pk).update(reminder_count=3)

        assert mark_cart_reminded(abandoned_cart, 3, now) is False
        assert _reload(abandoned_cart).reminder_count == 3


class TestRemindCart:
    def test_skips_cart_advanced_by_another_run(self, abandoned_cart, now, mailoutbox):
        Cart.objects.filter(pk=abandoned_cart.pk).update(reminder_count=3)

        assert remind_cart(abandoned_cart, now) == SKIPPED
        assert mailoutbox == []
        assert not DiscountCode.objects.exists()

    def test_issue_failure_is_reported(self, abandoned_cart, now, mailoutbox):
        with mock.patch(
            'apps.cart.abandonment.issue_discount_code',
            side_effect=DiscountCodeGenerationError('sin códigos'),
        ):
            assert remind_cart(abandoned_cart, now) == FAILED

        assert mailoutbox == []
        assert _reload(abandoned_cart).reminder_count == 0


class TestSweep:
    def test_first_run_issues_code_sends_and_counts(self, abandoned_cart, now, mailoutbox):
        summary = send_abandoned_cart_reminders(now=now)

        assert summary == {'candidates': 1, SENT: 1, SKIPPED: 0, FAILED: 0}

        code = DiscountCode.objects.get()
        assert code.user == abandoned_cart.user
        assert code.cart == abandoned_cart
        assert code.discount == 10
        assert code.expires_at == now + timedelta(days=3)

        assert len(mailoutbox) == 1
        message = mailoutbox[0]
        assert message.to == ['cliente@example.com']
        assert code.code in message.subject
        assert 'Camiseta (x2): 10% de descuento' in message.body
        assert 'Pantalón (x1): 10% de descuento' in message.body
        assert code.code in message.body

        cart = _reload(abandoned_cart)
        assert cart.reminder_count == 1
        assert cart.last_reminder_at == now

    def test_second_run_reuses_code(self, abandoned_cart, now, mailoutbox):
        send_abandoned_cart_reminders(now=now)
        first_code = DiscountCode.objects.get().code

        later = now + timedelta(days=1)
        summary = send_abandoned_cart_reminders(now=later)

        assert summary[SENT] == 1
        assert DiscountCode.objects.count() == 1
        assert len(mailoutbox) == 2
        assert first_code in mailoutbox[1].body
        cart = _reload(abandoned_cart)
        assert cart.reminder_count == 2
        assert cart.last_reminder_at == later

    def test_stops_after_three_reminders(self, abandoned_cart, now, mailoutbox):
        for day in range(5):
            send_abandoned_cart_reminders(now=now + timedelta(days=day))

        assert len(mailoutbox) == 3
        assert _reload(abandoned_cart).reminder_count == 3

    def test_capped_cart_untouched(self, customer, product, now, mailoutbox):
        cart = make_cart(customer, lines=[{'product': product}], reminder_count=3, now=now)

        summary = send_abandoned_cart_reminders(now=now)

        assert summary['candidates'] == 0
        assert mailoutbox == []
        assert not DiscountCode.objects.exists()
        reloaded = _reload(cart)
        assert reloaded.reminder_count == 3
        assert reloaded.last_reminder_at is None

    def test_send_failure_keeps_count_and_code(self, abandoned_cart, now, mailoutbox):
        with mock.patch(
            'apps.core.emails.EmailMultiAlternatives.send',
            side_effect=TimeoutError('smtp timeout'),
        ):
            summary = send_abandoned_cart_reminders(now=now)

        assert summary[FAILED] == 1
        assert _reload(abandoned_cart).reminder_count == 0
        code = DiscountCode.objects.get()

        send_abandoned_cart_reminders(now=now + timedelta(hours=1))

        assert len(mailoutbox) == 1
        assert code.code in mailoutbox[0].body
        assert DiscountCode.objects.count() == 1
        assert _reload(abandoned_cart).reminder_count == 1

    def test_recently_updated_cart_not_reminded(self, customer, product, now, mailoutbox):
        cart = make_cart(customer, lines=[{'product': product}], idle_hours=1, reminder_count=1, now=now)

        summary = send_abandoned_cart_reminders(now=now)

        assert summary['candidates'] == 0
        assert mailoutbox == []
        assert _reload(cart).reminder_count == 1

    def test_one_failing_cart_does_not_stop_others(self, product, now, mailoutbox):
        first = make_cart(make_user('uno@example.com'), lines=[{'product': product}], idle_hours=40, now=now)
        second = make_cart(make_user('dos@example.com'), lines=[{'product': product}], idle_hours=30, now=now)

        from apps.coupons import services

        real_issue = services.issue_discount_code

        def flaky_issue(user, cart, **kwargs):
            if cart.pk == first.pk:
                raise DatabaseError('fallo de escritura')
            return real_issue(user, cart, **kwargs)

        with mock.patch('apps.cart.abandonment.issue_discount_code', side_effect=flaky_issue):
            summary = send_abandoned_cart_reminders(now=now)

        assert summary == {'candidates': 2, SENT: 1, SKIPPED: 0, FAILED: 1}
        assert [m.to for m in mailoutbox] == [['dos@example.com']]
        assert _reload(first).reminder_count == 0
        assert _reload(second).reminder_count == 1

    def test_reread_failure_does_not_stop_others(self, product, now, mailoutbox):
        first = make_cart(make_user('uno@example.com'), lines=[{'product': product}], idle_hours=40, now=now)
        second = make_cart(make_user('dos@example.com'), lines=[{'product': product}], idle_hours=30, now=now)

        real_values_list = QuerySet.values_list
        calls = []

        def failing_first_reread(queryset, *fields, **kwargs):
            calls.append(fields)
            if len(calls) == 1:
                raise DatabaseError('conexión perdida')
            return real_values_list(queryset, *fields, **kwargs)

        with mock.patch.object(QuerySet, 'values_list', autospec=True, side_effect=failing_first_reread):
            summary = send_abandoned_cart_reminders(now=now)

        assert calls[0] == ('reminder_count',)
        assert summary == {'candidates': 2, SENT: 1, SKIPPED: 0, FAILED: 1}
        assert [m.to for m in mailoutbox] == [['dos@example.com']]
        assert _reload(first).reminder_count == 0
        assert _reload(second).reminder_count == 1

    def test_unexpected_issuer_error_does_not_stop_others(self, product, now, mailoutbox):
        first = make_cart(make_user('uno@example.com'), lines=[{'product': product}], idle_hours=40, now=now)
        second = make_cart(make_user('dos@example.com'), lines=[{'product': product}], idle_hours=30, now=now)

        from apps.coupons import services

        real_issue = services.issue_discount_code

        def broken_issue(user, cart, **kwargs):
            if cart.pk == first.pk:
                raise RuntimeError('estado inesperado')
            return real_issue(user, cart, **kwargs)

        with mock.patch('apps.cart.abandonment.issue_discount_code', side_effect=broken_issue):
            summary = send_abandoned_cart_reminders(now=now)

        assert summary == {'candidates': 2, SENT: 1, SKIPPED: 0, FAILED: 1}
        assert [m.to for m in mailoutbox] == [['dos@example.com']]
        assert _reload(first).reminder_count == 0
        assert _reload(second).reminder_count == 1

    def test_item_rendering_error_counts_as_failure(self, abandoned_cart, now, mailoutbox):
        with mock.patch(
            'apps.cart.abandonment.build_reminder_items',
            side_effect=AttributeError('variant'),
        ):
            summary = send_abandoned_cart_reminders(now=now)

        assert summary == {'candidates': 1, SENT: 0, SKIPPED: 0, FAILED: 1}
        assert mailoutbox == []
        assert _reload(abandoned_cart).reminder_count == 0

    def test_query_failure_aborts_run(self, abandoned_cart, now, mailoutbox):
        with mock.patch(
            'apps.cart.abandonment.find_abandoned_carts',
            side_effect=DatabaseError('sin conexión'),
        ):
            with pytest.raises(DatabaseError):
                send_abandoned_cart_reminders(now=now)

        assert mailoutbox == []

    def test_variant_names_in_email(self, customer, now, mailoutbox):
        product = make_product(name='Zapatilla')
        variant = make_variant(product, name='Zapatilla Roja 42')
        make_cart(customer, lines=[{'variant': variant, 'quantity': 1}], now=now)

        send_abandoned_cart_reminders(now=now)

        assert 'Zapatilla Roja 42 (x1)' in mailoutbox[0].body

    def test_codes_stay_unique_across_carts(self, product, now):
        for i in range(5):
            make_cart(make_user(f'c{i}@example.com'), lines=[{'product': product}], now=now)

        send_abandoned_cart_reminders(now=now)

        codes = list(DiscountCode.objects.values_list('code', flat=True))
        assert len(codes) == 5
        assert len(set(codes)) == 5
