import pytest

from timeclock.services.pin_service import MAX_ATTEMPTS, PinGenerationError, generate_unique_pin


def test_generated_pin_is_four_digits_and_unused():
    used = {"1000", "1001"}
    for _ in range(50):
        pin = generate_unique_pin(used)
        assert pin not in used
        assert len(pin) == 4
        assert 1000 <= int(pin) <= 9999


def test_skips_taken_pins():
    draws = iter([1234, 1234, 5678])
    pin = generate_unique_pin({"1234"}, randint=lambda a, b: next(draws))
    assert pin == "5678"


def test_gives_up_after_max_attempts():
    calls = []

    def always_taken(a, b):
        calls.append((a, b))
        return 1234

    with pytest.raises(PinGenerationError):
        generate_unique_pin({"1234"}, randint=always_taken)
    assert len(calls) == MAX_ATTEMPTS


def test_generate_pin_endpoint(admin_client, employee):
    response = admin_client.get("/api/employees/generate-pin")
    assert response.status_code == 200
    pin = response.json()["pin"]
    assert pin != employee.pin
    assert len(pin) == 4
