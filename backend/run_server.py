#!/usr/bin/env python3
"""
Launch script for RideTrack Backend.

Usage:
    python run_server.py [data_folder] [--port PORT] [--host HOST] [--seed-sample]

Examples:
    python run_server.py                    # Use default ./data/rides folder
    python run_server.py /path/to/store     # Use custom folder
    python run_server.py --seed-sample      # Add a generated demo ride first
"""

import argparse
import os
from pathlib import Path


def main():
    parser = argparse.ArgumentParser(description="RideTrack Backend Server")
    parser.add_argument(
        "data_folder",
        nargs="?",
        default="./data/rides",
        help="Folder for the local ride store (default: ./data/rides)"
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        default=8000,
        help="Port to run server on (default: 8000)"
    )
    parser.add_argument(
        "--host", "-H",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for all interfaces)"
    )
    parser.add_argument(
        "--seed-sample",
        action="store_true",
        help="Store a generated sample ride before starting"
    )
    parser.add_argument(
        "--debug", "-d",
        action="store_true",
        help="Run in debug mode"
    )

    args = parser.parse_args()

    data_folder = Path(args.data_folder)

    print(f"RideTrack Backend")
    print(f"=" * 40)
    print(f"Data folder: {data_folder.absolute()}")
    print(f"Server: http://{args.host}:{args.port}")
    print(f"=" * 40)

    # Configure data folder for the FastAPI lifespan
    os.environ["RIDETRACK_DATA_FOLDER"] = str(data_folder)

    if args.seed_sample:
        from ridetrack.services.repository import RideRepository
        from ridetrack.utils.sample_data import generate_sample_ride

        repo = RideRepository(data_folder)
        ride = repo.add_ride(generate_sample_ride())
        print(f"\nSeeded sample ride {ride.id} ({len(ride.trace)} fixes)")

    print("\nAPI Endpoints:")
    print("  GET  /                     - Health check")
    print("  GET  /health               - Detailed health")
    print("  GET  /rides                - List rides")
    print("  GET  /rides/{id}           - Ride detail")
    print("  POST /recording/start      - Start recording")
    print("  POST /location/fixes       - Push GPS fixes")
    print("  POST /recording/stop       - Stop and save")
    print("  POST /navigation/search    - Search places")
    print("  POST /navigation/routes    - Calculate routes")
    print("  POST /navigation/start     - Start navigation")
    print("  GET  /auth/rides           - Remote rides")
    print("\nStarting server...")

    import uvicorn

    uvicorn.run(
        "ridetrack.main:app",
        host=args.host,
        port=args.port,
        reload=args.debug,
        log_level="info",
    )


if __name__ == "__main__":
    main()
