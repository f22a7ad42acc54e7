#!/usr/bin/env python3
"""
Validation script for the snaplinks service.
Exercises the live running service end to end: upload, resolve, visibility and delete.
"""

import base64
import sys
import time
import requests
from typing import Optional
from datetime import datetime


# 1x1 transparent PNG
TINY_PNG = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


class ServiceValidator:
    """Validates snaplinks service functionality."""

    def __init__(self, base_url: str = "http://localhost:9300", token: Optional[str] = None):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = requests.Session()
        self.test_results = []

    def _auth(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"} if self.token else {}

    def print_header(self, text: str):
        print(f"\n{'='*60}")
        print(f"  {text}")
        print(f"{'='*60}\n")

    def print_test(self, name: str, passed: bool, details: str = ""):
        status = "✅ PASS" if passed else "❌ FAIL"
        self.test_results.append((name, passed))
        print(f"{status} - {name}")
        if details:
            print(f"       {details}")

    def test_health_check(self) -> bool:
        try:
            response = self.session.get(f"{self.base_url}/api/health", timeout=5)
            if response.status_code == 200:
                data = response.json()
                is_healthy = data.get("status") == "healthy"
                details = (
                    f"DB: {data.get('database')}, Storage: {data.get('storage')}, "
                    f"Cache: {data.get('cache', 'N/A')}"
                )
                self.print_test("Health Check", is_healthy, details)
                return is_healthy
            self.print_test("Health Check", False, f"Status: {response.status_code}")
            return False
        except requests.RequestException as e:
            self.print_test("Health Check", False, f"Error: {e}")
            return False

    def test_anonymous_upload_rejected(self) -> bool:
        try:
            response = self.session.post(
                f"{self.base_url}/api/uploads",
                files={"file": ("probe.png", TINY_PNG, "image/png")},
                timeout=10,
            )
            passed = response.status_code == 401
            self.print_test("Anonymous Upload Rejected", passed, f"Status: {response.status_code} (expected 401)")
            return passed
        except requests.RequestException as e:
            self.print_test("Anonymous Upload Rejected", False, f"Error: {e}")
            return False

    def test_upload(self) -> Optional[dict]:
        try:
            response = self.session.post(
                f"{self.base_url}/api/uploads",
                files={"file": (f"validate-{int(time.time())}.png", TINY_PNG, "image/png")},
                data={"is_public": "true"},
                headers=self._auth(),
                timeout=10,
            )
            if response.status_code == 201:
                data = response.json()
                self.print_test("Upload", True, f"Code: {data.get('short_code')}, URL: {data.get('short_url')}")
                return data
            self.print_test("Upload", False, f"Status: {response.status_code} {response.text[:100]}")
            return None
        except requests.RequestException as e:
            self.print_test("Upload", False, f"Error: {e}")
            return None

    def test_link_info(self, short_code: str) -> bool:
        try:
            response = self.session.get(f"{self.base_url}/api/links/{short_code}", timeout=5)
            if response.status_code == 200:
                data = response.json()
                has_fields = all(k in data for k in ("short_code", "location", "view_count"))
                self.print_test("Link Info", has_fields, f"Views: {data.get('view_count')}")
                return has_fields
            self.print_test("Link Info", False, f"Status: {response.status_code}")
            return False
        except requests.RequestException as e:
            self.print_test("Link Info", False, f"Error: {e}")
            return False

    def test_redirect(self, short_code: str) -> bool:
        try:
            response = self.session.get(f"{self.base_url}/{short_code}", allow_redirects=False, timeout=5)
            is_redirect = response.status_code == 302
            location = response.headers.get("Location", "")
            self.print_test(
                "Short Link Redirect",
                is_redirect,
                f"Redirects to: {location[:50]}..." if location else "No Location header",
            )
            return is_redirect
        except requests.RequestException as e:
            self.print_test("Short Link Redirect", False, f"Error: {e}")
            return False

    def test_private_hidden(self, asset: dict) -> bool:
        """A private link must look exactly like a missing one to strangers."""
        try:
            response = self.session.patch(
                f"{self.base_url}/api/assets/{asset['id']}",
                json={"is_public": False},
                headers=self._auth(),
                timeout=5,
            )
            if response.status_code != 200:
                self.print_test("Private Link Hidden", False, f"PATCH status: {response.status_code}")
                return False

            private = self.session.get(f"{self.base_url}/{asset['short_code']}", allow_redirects=False, timeout=5)
            missing = self.session.get(f"{self.base_url}/zzzzzz", allow_redirects=False, timeout=5)
            passed = private.status_code == missing.status_code == 404 and private.text == missing.text
            self.print_test("Private Link Hidden", passed, f"Status: {private.status_code} vs {missing.status_code}")
            return passed
        except requests.RequestException as e:
            self.print_test("Private Link Hidden", False, f"Error: {e}")
            return False

    def test_delete(self, asset: dict) -> bool:
        try:
            response = self.session.delete(
                f"{self.base_url}/api/assets/{asset['id']}",
                headers=self._auth(),
                timeout=5,
            )
            gone = self.session.get(f"{self.base_url}/api/links/{asset['short_code']}", timeout=5)
            passed = response.status_code == 204 and gone.status_code == 404
            self.print_test("Delete Asset", passed, f"Status: {response.status_code}, then {gone.status_code}")
            return passed
        except requests.RequestException as e:
            self.print_test("Delete Asset", False, f"Error: {e}")
            return False

    def test_nonexistent_code(self) -> bool:
        try:
            response = self.session.get(f"{self.base_url}/api/links/nonexistent999", timeout=5)
            is_not_found = response.status_code == 404
            self.print_test("Non-existent Code", is_not_found, f"Status: {response.status_code} (expected 404)")
            return is_not_found
        except requests.RequestException as e:
            self.print_test("Non-existent Code", False, f"Error: {e}")
            return False

    def test_stats_endpoint(self) -> bool:
        try:
            response = self.session.get(f"{self.base_url}/api/stats", timeout=5)
            if response.status_code == 200:
                data = response.json()
                has_stats = "total_assets" in data
                self.print_test("Stats Endpoint", has_stats, f"Total assets: {data.get('total_assets', 'N/A')}")
                return has_stats
            self.print_test("Stats Endpoint", False, f"Status: {response.status_code}")
            return False
        except requests.RequestException as e:
            self.print_test("Stats Endpoint", False, f"Error: {e}")
            return False

    def test_web_interface(self) -> bool:
        try:
            response = self.session.get(f"{self.base_url}/", timeout=5)
            is_ok = response.status_code == 200 and "text/html" in response.headers.get("content-type", "")
            self.print_test("Web Interface", is_ok, f"Content-Type: {response.headers.get('content-type', 'N/A')}")
            return is_ok
        except requests.RequestException as e:
            self.print_test("Web Interface", False, f"Error: {e}")
            return False

    def run_all_tests(self) -> bool:
        self.print_header("Snaplinks Service Validation")
        print(f"Testing service at: {self.base_url}")
        print(f"Timestamp: {datetime.now().isoformat()}\n")

        if not self.test_health_check():
            print("\n❌ Health check failed. Service may not be running.")
            print(f"   Make sure the service is accessible at {self.base_url}")
            return False

        print()

        self.test_anonymous_upload_rejected()
        if self.token:
            asset = self.test_upload()
            if asset:
                self.test_link_info(asset["short_code"])
                self.test_redirect(asset["short_code"])
                self.test_private_hidden(asset)
                self.test_delete(asset)
        else:
            print("⚠️  No --token given, skipping upload tests")

        print()

        self.test_nonexistent_code()
        self.test_stats_endpoint()
        self.test_web_interface()

        self.print_summary()

        return all(passed for _, passed in self.test_results)

    def print_summary(self):
        total = len(self.test_results)
        passed = sum(1 for _, p in self.test_results if p)
        failed = total - passed

        self.print_header("Test Summary")
        print(f"Total Tests:  {total}")
        print(f"✅ Passed:     {passed}")
        print(f"❌ Failed:     {failed}")
        print(f"Success Rate: {(passed/total*100):.1f}%")

        if failed > 0:
            print("\n⚠️  Failed tests:")
            for name, passed in self.test_results:
                if not passed:
                    print(f"   - {name}")

        print()


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Validate snaplinks service functionality")
    parser.add_argument(
        "--url",
        default="http://localhost:9300",
        help="Base URL of the service (default: http://localhost:9300)"
    )
    parser.add_argument("--token", help="Bearer token of a regular user, enables upload tests")

    args = parser.parse_args()

    validator = ServiceValidator(args.url, token=args.token)

    try:
        success = validator.run_all_tests()
        sys.exit(0 if success else 1)
    except KeyboardInterrupt:
        print("\n\n⚠️  Validation interrupted by user")
        sys.exit(2)


if __name__ == "__main__":
    main()
