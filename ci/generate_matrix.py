#!/usr/bin/env python3
"""Generate the GitHub Actions build matrix for the container images.

The Ruby base image is built once per supported Ruby release. Supported
releases come from endoflife.date, so the matrix follows upstream EOL dates
without touching the workflow.

Usage:
    python3 ci/generate_matrix.py -e schedule
    python3 ci/generate_matrix.py -e workflow_dispatch -d ruby-image
"""

import argparse
import json
import os
import sys
import urllib.request
from datetime import date

EOL_API_URL = "https://endoflife.date/api/{product}.json"

RUBY_IMAGE_DIR = "ruby-image"
DEBUG_IMAGE_DIR = "debug-image"


def fetch_release_cycles(product="ruby", url=None, timeout=30):
    """Fetch the release cycles of a product from endoflife.date."""
    if url is None:
        url = os.environ.get("EOL_API_URL") or EOL_API_URL
    url = url.replace("{product}", product)

    req = urllib.request.Request(
        url,
        headers={"Accept": "application/json", "User-Agent": "Container-Factory-Matrix"},
    )
    with urllib.request.urlopen(req, timeout=timeout) as response:
        return json.loads(response.read().decode("utf-8"))


def is_supported(cycle, today):
    """Return True if the cycle has not reached its end of life.

    endoflife.date publishes ``eol`` either as an ISO date or as a boolean
    (``false`` while no EOL date is announced).
    """
    eol = cycle.get("eol", False)
    if isinstance(eol, bool):
        return not eol
    return date.fromisoformat(eol) > today


def supported_versions(product="ruby", today=None, cycles=None):
    """Latest patch release of every supported cycle, newest cycle first."""
    if today is None:
        today = date.today()
    if cycles is None:
        cycles = fetch_release_cycles(product)

    latest_versions = []
    for cycle in cycles:
        if not is_supported(cycle, today):
            continue
        eol = cycle.get("eol", False)
        if not isinstance(eol, str):
            eol = json.dumps(eol)
        print(
            f"{product.capitalize()} {cycle['cycle']} - Latest Version: {cycle['latest']}, EOL: {eol}",
            file=sys.stderr,
        )
        latest_versions.append(cycle["latest"])
    return latest_versions


def generate_ruby_matrix(dockerfile_dir, versions=None):
    """One matrix entry per supported Ruby version."""
    if versions is None:
        versions = supported_versions("ruby")
    return [
        {"dockerfile_dir": dockerfile_dir, "build_args": f"RUBY_VERSION={version}"}
        for version in versions
    ]


def schedule_matrix():
    return {"include": generate_ruby_matrix(RUBY_IMAGE_DIR)}


def workflow_dispatch_matrix(dockerfile_dir):
    if dockerfile_dir == RUBY_IMAGE_DIR:
        return {"include": generate_ruby_matrix(dockerfile_dir)}
    return {"include": [{"dockerfile_dir": dockerfile_dir}]}


def default_matrix():
    return {
        "include": [
            {"dockerfile_dir": DEBUG_IMAGE_DIR},
            *generate_ruby_matrix(RUBY_IMAGE_DIR),
        ]
    }


def to_json(matrix):
    """Compact JSON, as consumed by fromJSON() in the workflow."""
    return json.dumps(matrix, separators=(",", ":"))


def set_matrix(event_name, dockerfile_dir=None):
    """Select the matrix for a workflow event.

    Raises ValueError when a workflow_dispatch event has no dockerfile_dir.
    """
    print(
        f"Building matrix for event name {event_name} and dockerfile in {dockerfile_dir}",
        file=sys.stderr,
    )
    if event_name == "schedule":
        print("Running schedule event", file=sys.stderr)
        matrix = schedule_matrix()
    elif event_name == "workflow_dispatch":
        print("Running workflow_dispatch event", file=sys.stderr)
        if not dockerfile_dir:
            raise ValueError("Please specify a dockerfile_dir")
        matrix = workflow_dispatch_matrix(dockerfile_dir)
    else:
        print("Running default_matrix event", file=sys.stderr)
        matrix = default_matrix()

    print(f"matrix={to_json(matrix)}", file=sys.stderr)
    return matrix


def write_github_output(matrix, path):
    with open(path, "a", encoding="utf-8") as f:
        f.write(f"matrix={to_json(matrix)}\n")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Generate GitHub Actions matrix for container builds")
    parser.add_argument("-e", "--event_name", help="Event name (defaults to $GITHUB_EVENT_NAME)")
    parser.add_argument(
        "-d", "--dockerfile_dir",
        help="Dockerfile directory (defaults to $GITHUB_EVENT_INPUTS_DOCKERFILE_DIR)",
    )
    args = parser.parse_args(argv)

    event_name = args.event_name or os.environ.get("GITHUB_EVENT_NAME")
    dockerfile_dir = args.dockerfile_dir or os.environ.get("GITHUB_EVENT_INPUTS_DOCKERFILE_DIR")

    try:
        matrix = set_matrix(event_name, dockerfile_dir)
    except (ValueError, OSError) as e:
        # JSONDecodeError is a ValueError, URLError and read timeouts are OSErrors
        print(f"Error: {e}", file=sys.stderr)
        print(f"::error::Failed to generate build matrix: {e}")
        sys.exit(1)

    print("::group::Job matrix")
    print(json.dumps(matrix, indent=2))
    print("::endgroup::")

    github_output = os.environ.get("GITHUB_OUTPUT")
    if not github_output:
        print("Skipping output: GITHUB_OUTPUT not set.", file=sys.stderr)
        return
    write_github_output(matrix, github_output)


if __name__ == "__main__":
    main()
