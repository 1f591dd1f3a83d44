import unittest

from babylog.schemas import CareRecord, DiaperRecord, FeedingRecord, SleepRecord, SupplementRecord
from babylog.stats import day_of_life, minutes_to_hours, sleep_minutes, summarize_day, time_to_minutes


class SleepMinutesTests(unittest.TestCase):
    def test_overnight_sleep_wraps_midnight(self):
        self.assertEqual(sleep_minutes("23:30", "00:15"), 45)

    def test_equal_times_count_as_zero(self):
        self.assertEqual(sleep_minutes("08:00", "08:00"), 0)

    def test_open_or_unparsable_sleep_counts_as_zero(self):
        self.assertEqual(sleep_minutes("08:00", ""), 0)
        self.assertEqual(sleep_minutes("08:00", None), 0)
        self.assertEqual(sleep_minutes("soon", "09:00"), 0)

    def test_time_to_minutes(self):
        self.assertEqual(time_to_minutes("01:30"), 90)
        self.assertIsNone(time_to_minutes("noon"))
        self.assertIsNone(time_to_minutes(""))


class SummarizeDayTests(unittest.TestCase):
    def test_empty_day_is_all_zeros(self):
        stats = summarize_day([], [], [])
        self.assertEqual(
            stats.model_dump(by_alias=True),
            {
                "feedingCount": 0,
                "totalMilk": 0,
                "totalBreastMin": 0,
                "diaperCount": 0,
                "poopCount": 0,
                "sleepHours": 0.0,
                "supplementsDone": 0,
                "supplementsTotal": 0,
                "careDone": 0,
                "careTotal": 0,
            },
        )

    def test_totals_from_rows(self):
        feedings = [
            FeedingRecord(date="2024-01-01", time="06:00", breast_left=10, breast_right=5, bottle_breast_milk=60),
            FeedingRecord(date="2024-01-01", time="09:00", bottle_formula=90),
        ]
        diapers = [
            DiaperRecord(date="2024-01-01", time="07:00", type="pee"),
            DiaperRecord(date="2024-01-01", time="08:00", type="poop"),
            DiaperRecord(date="2024-01-01", time="10:00", type="both"),
        ]
        sleeps = [
            SleepRecord(date="2024-01-01", start_time="23:30", end_time="00:15"),
            SleepRecord(date="2024-01-01", start_time="13:00", end_time="14:00"),
            SleepRecord(date="2024-01-01", start_time="20:00"),
        ]
        stats = summarize_day(feedings, diapers, sleeps)
        self.assertEqual(stats.feeding_count, 2)
        self.assertEqual(stats.total_milk, 150)
        self.assertEqual(stats.total_breast_min, 15)
        self.assertEqual(stats.diaper_count, 3)
        self.assertEqual(stats.poop_count, 2)
        # 105 minutes -> 1.75h -> 1.8
        self.assertEqual(stats.sleep_hours, 1.8)

    def test_checklist_completion(self):
        supplement = SupplementRecord(date="2024-01-01", items={"AD": True, "D3": False, "Iron": True})
        care = CareRecord(date="2024-01-01", items={"洗脸": False})
        stats = summarize_day([], [], [], supplement, care)
        self.assertEqual((stats.supplements_done, stats.supplements_total), (2, 3))
        self.assertEqual((stats.care_done, stats.care_total), (0, 1))

    def test_hours_round_half_up(self):
        self.assertEqual(minutes_to_hours(45), 0.8)
        self.assertEqual(minutes_to_hours(3), 0.1)
        self.assertEqual(minutes_to_hours(90), 1.5)
        self.assertEqual(minutes_to_hours(0), 0.0)


class DayOfLifeTests(unittest.TestCase):
    def test_birth_date_is_day_one(self):
        self.assertEqual(day_of_life("2024-01-01", "2024-01-01"), 1)
        self.assertEqual(day_of_life("2024-01-01", "2024-01-31"), 31)

    def test_dates_before_birth(self):
        self.assertEqual(day_of_life("2024-01-10", "2024-01-09"), 0)

    def test_malformed_date(self):
        with self.assertRaises(ValueError):
            day_of_life("01/01/2024", "2024-01-02")


if __name__ == "__main__":
    unittest.main()
