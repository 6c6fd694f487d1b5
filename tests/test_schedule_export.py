import csv
import io
import unittest
from types import SimpleNamespace

from app.services.schedule_export_service import EXPORT_COLUMNS, project, to_csv


def _entry(entry_id, day, period, subject, class_name):
    return SimpleNamespace(id=entry_id, day=day, period=period, subject=subject, class_name=class_name)


class ScheduleExportTests(unittest.TestCase):
    def test_empty_table_has_only_recess_labels(self):
        table = project([])
        self.assertEqual(list(table.columns), ['Period', 'Time', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday'])
        self.assertEqual(len(table.rows), 11)

        filled = [
            (row['Time'], column, value)
            for row in table.rows
            for column, value in row.items()
            if column in EXPORT_COLUMNS[2:] and value
        ]
        self.assertEqual(
            filled,
            [('09:40 - 10:10', 'Monday', 'Recess I'), ('11:55 - 12:25', 'Monday', 'Recess II')],
        )

    def test_recess_rows_follow_period3_and_period6(self):
        table = project([])
        self.assertEqual(table.rows[2]['Period'], '3')
        self.assertEqual(table.rows[3]['Monday'], 'Recess I')
        self.assertEqual(table.rows[3]['Period'], '')
        self.assertEqual(table.rows[6]['Period'], '6')
        self.assertEqual(table.rows[7]['Monday'], 'Recess II')
        self.assertEqual(table.rows[10]['Period'], '9')

    def test_cells_render_subject_and_class(self):
        table = project(
            [
                _entry(1, 'monday', 'period1', 'Math', '7A'),
                _entry(2, 'friday', 'period9', 'Art', '9C'),
            ]
        )
        self.assertEqual(table.rows[0]['Monday'], 'Math (7A)')
        self.assertEqual(table.rows[0]['Time'], '07:55 - 08:30')
        self.assertEqual(table.rows[10]['Friday'], 'Art (9C)')
        self.assertEqual(table.rows[0]['Tuesday'], '')

    def test_later_entry_wins_shared_cell(self):
        table = project(
            [
                _entry(5, 'tuesday', 'period2', 'Physics', '8B'),
                _entry(3, 'tuesday', 'period2', 'Chemistry', '8A'),
            ]
        )
        self.assertEqual(table.rows[1]['Tuesday'], 'Physics (8B)')

    def test_as_dict(self):
        payload = project([_entry(1, 'monday', 'period1', 'Math', '7A')]).as_dict()
        self.assertEqual(payload['columns'][0], 'Period')
        self.assertEqual(payload['rows'][0]['Monday'], 'Math (7A)')

    def test_csv_export(self):
        content = to_csv(project([_entry(1, 'wednesday', 'period4', 'History, World', '8C')]))
        lines = content.splitlines()
        self.assertEqual(lines[0], '"Period","Time","Monday","Tuesday","Wednesday","Thursday","Friday"')
        self.assertEqual(len(lines), 12)

        rows = list(csv.DictReader(io.StringIO(content)))
        self.assertEqual(rows[3]['Monday'], 'Recess I')
        self.assertEqual(rows[4]['Period'], '4')
        self.assertEqual(rows[4]['Wednesday'], 'History, World (8C)')


if __name__ == '__main__':
    unittest.main()
