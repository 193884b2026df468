import argparse
import sys
import unittest
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))


def _parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Run the workshop lottery test suite")
    p.add_argument("--pattern", default="test_*.py", help="File pattern for test discovery")
    p.add_argument("--quiet", action="store_true", help="Only print failures and the final tally")
    return p.parse_args()


def main() -> int:
    args = _parse_args()
    loader = unittest.TestLoader()
    suite = loader.discover(start_dir=str(ROOT / "tests"), pattern=args.pattern)
    runner = unittest.TextTestRunner(verbosity=1 if args.quiet else 2)
    result = runner.run(suite)
    return 0 if result.wasSuccessful() else 1


if __name__ == "__main__":
    raise SystemExit(main())
