import pytest

from glucoloop.core.schedules import (
    BasalSegment,
    Meal,
    build_basal_schedule,
    build_carb_schedule,
    default_basal,
    default_meals,
)


class TestCarbSchedule:

    def test_default_day(self):
        carbs = build_carb_schedule(default_meals())
        assert len(carbs) == 24 * 60 + 1
        assert carbs[8 * 60] == 40
        assert carbs[12 * 60] == 70
        assert carbs[16 * 60] == 10
        assert carbs[20 * 60] == 50
        assert sum(carbs) == 170

    def test_meals_repeat_every_day(self):
        carbs = build_carb_schedule([Meal(hour=7.5, carbs_g=30)], days=2)
        assert len(carbs) == 2 * 24 * 60 + 1
        assert carbs[450] == 30
        assert carbs[24 * 60 + 450] == 30
        assert sum(carbs) == 60

    def test_coarser_step(self):
        carbs = build_carb_schedule([Meal(hour=1, carbs_g=20)], step=5.0)
        assert len(carbs) == 24 * 12 + 1
        assert carbs[12] == 20

    def test_meal_outside_day_ignored(self):
        assert sum(build_carb_schedule([Meal(hour=25, carbs_g=20)])) == 0

    def test_invalid_step(self):
        with pytest.raises(ValueError):
            build_carb_schedule(default_meals(), step=0.0)


class TestBasalSchedule:

    def test_default_segments(self):
        basal = build_basal_schedule(default_basal())
        assert basal[0] == pytest.approx(1.5 / 60)
        assert basal[8 * 60 - 1] == pytest.approx(1.5 / 60)
        assert basal[8 * 60] == pytest.approx(1.3 / 60)
        assert basal[12 * 60] == pytest.approx(1.9 / 60)
        assert basal[20 * 60] == pytest.approx(1.7 / 60)
        assert basal[24 * 60] == pytest.approx(1.5 / 60)

    def test_daily_total(self):
        basal = build_basal_schedule(default_basal())
        expected = 8 * 1.5 + 4 * 1.3 + 8 * 1.9 + 4 * 1.7
        assert sum(basal[:24 * 60]) == pytest.approx(expected)

    def test_rate_per_step(self):
        basal = build_basal_schedule([BasalSegment(start_hour=0, rate_u_per_hr=1.2)], step=5.0)
        assert basal[0] == pytest.approx(0.1)

    def test_first_segment_after_midnight_wraps(self):
        basal = build_basal_schedule([BasalSegment(6, 1.2), BasalSegment(22, 0.6)])
        assert basal[0] == pytest.approx(0.6 / 60)
        assert basal[6 * 60] == pytest.approx(1.2 / 60)

    def test_no_segments(self):
        assert set(build_basal_schedule([])) == {0.0}
