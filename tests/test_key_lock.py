import threading
import time
import unittest

from app.core.key_lock import KeyedLock


class KeyedLockTests(unittest.TestCase):
    def test_same_key_is_serialized(self):
        locks = KeyedLock('test')
        inside = {'now': 0, 'max': 0}
        guard = threading.Lock()

        def worker():
            with locks.hold('teacher:1'):
                with guard:
                    inside['now'] += 1
                    inside['max'] = max(inside['max'], inside['now'])
                time.sleep(0.01)
                with guard:
                    inside['now'] -= 1

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(inside['max'], 1)
        self.assertEqual(locks.active_keys(), [])

    def test_different_keys_do_not_block(self):
        locks = KeyedLock('test')
        with locks.hold('a'):
            acquired = threading.Event()

            def worker():
                with locks.hold('b'):
                    acquired.set()

            thread = threading.Thread(target=worker)
            thread.start()
            self.assertTrue(acquired.wait(timeout=2))
            thread.join()
            self.assertEqual(locks.active_keys(), ['a'])

    def test_lock_released_on_error(self):
        locks = KeyedLock('test')
        with self.assertRaises(RuntimeError):
            with locks.hold('x'):
                raise RuntimeError('boom')
        self.assertEqual(locks.active_keys(), [])


if __name__ == '__main__':
    unittest.main()
