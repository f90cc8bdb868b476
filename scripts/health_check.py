#!/usr/bin/env python3
"""Health check script for the cost guard service"""

import argparse
import os
import sys
from typing import Any

import requests

DEFAULT_URL = os.getenv("COST_GUARD_URL", "http://localhost:8080")


def check_service(base_url: str = DEFAULT_URL) -> dict[str, Any]:
    """Health check for the API and its store"""
    try:
        # Process is up
        response = requests.get(f"{base_url}/healthz", timeout=5)
        if response.status_code != 200:
            return {"status": "unhealthy", "reason": f"API returned {response.status_code}"}

        # Store reachable
        ready_response = requests.get(f"{base_url}/api/health/ready", timeout=5)
        if ready_response.status_code != 200:
            return {"status": "unhealthy", "reason": "Store connectivity failed"}

        scheduler_state = ready_response.json().get("scheduler")
        if scheduler_state == "stopped":
            return {"status": "degraded", "reason": "Scheduler is not running"}

        return {"status": "healthy", "reason": "All checks passed"}

    except requests.exceptions.RequestException as e:
        return {"status": "unhealthy", "reason": f"Request failed: {e}"}
    except ValueError as e:
        return {"status": "unhealthy", "reason": f"Invalid readiness payload: {e}"}


def main():
    parser = argparse.ArgumentParser(description="Health check for the cost guard service")
    parser.add_argument("--url", default=DEFAULT_URL, help="Base URL of the service")

    args = parser.parse_args()
    result = check_service(args.url)

    print(f"Health check result: {result}")

    if result["status"] == "healthy":
        sys.exit(0)
    elif result["status"] == "degraded":
        print(f"Service degraded: {result['reason']}")
        sys.exit(0)  # Still return OK for degraded state
    else:
        print(f"Service unhealthy: {result['reason']}")
        sys.exit(1)


if __name__ == "__main__":
    main()
