import subprocess
import sys
import os

TEST_ENV = {
    "DATABASE_URL": "sqlite+aiosqlite:///./test.db",
    "DEBUG": "true",
    "ENVIRONMENT": "testing",
    "SKIP_CONFIG_VALIDATION": "true",
    "RATE_LIMIT_PER_MINUTE": "1000",
}


def _in_project_root() -> bool:
    if not os.path.exists("app"):
        print("❌ Error: Please run this script from the project root directory")
        print("   (Should contain app/ folder)")
        return False
    return True


def run_tests():
    """Run the whole suite against a throwaway SQLite database"""

    print("🧪 Starting Book Catalog Tests...")
    print("=" * 60)

    if not _in_project_root():
        return 1

    os.environ.update(TEST_ENV)

    test_command = [
        sys.executable, "-m", "pytest",
        "app/tests/",
        "-v",
        "--tb=short",
        "--disable-warnings",
        "-x"
    ]

    print(f"🚀 Running command: {' '.join(test_command)}")
    print("-" * 60)

    try:
        result = subprocess.run(test_command, timeout=300)
    except subprocess.TimeoutExpired:
        print("\n⏰ Tests timed out after 5 minutes")
        return 1
    except KeyboardInterrupt:
        print("\n🛑 Tests interrupted by user")
        return 1

    if result.returncode == 0:
        print("\n🎉 All tests passed!")
    else:
        print(f"\n❌ Tests failed with exit code {result.returncode}")
    return result.returncode


def run_single_test(test_name):
    if not _in_project_root():
        return 1

    test_path = f"app/tests/test_{test_name}.py"
    if not os.path.exists(test_path):
        print(f"❌ Test file {test_path} not found")
        available_tests = [
            f.replace("test_", "").replace(".py", "")
            for f in os.listdir("app/tests")
            if f.startswith("test_") and f.endswith(".py")
        ]
        print(f"Available tests: {', '.join(sorted(available_tests))}")
        return 1

    os.environ.update(TEST_ENV)

    print(f"🧪 Running single test: {test_name}")
    print("=" * 40)

    result = subprocess.run([
        sys.executable, "-m", "pytest",
        test_path,
        "-v",
        "--tb=short",
        "--disable-warnings"
    ])

    return result.returncode


if __name__ == "__main__":
    if len(sys.argv) > 1:
        exit_code = run_single_test(sys.argv[1])
    else:
        exit_code = run_tests()

    sys.exit(exit_code)
