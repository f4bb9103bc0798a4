"""
Simple test runner script.
Run with: python run_tests.py
"""

import subprocess
import sys

if __name__ == "__main__":
    result = subprocess.run(
        [
            sys.executable, "-m", "pytest",
            "-v",              # Verbose output
            "--tb=short",      # Short traceback format
            "tests/",
        ],
        cwd=".",
    )
    sys.exit(result.returncode)
