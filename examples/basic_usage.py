#!/usr/bin/env python3
"""
Basic usage example of the handheld navigation tracker.

Simulates a person walking a square with a phone held upright and feeds the
noisy sensor stream through the tracker one frame at a time. Pass a CSV path
to record the run for tools/plot_nav.py.
"""

import csv
import logging
import math
import sys
import os

import numpy as np

# Add package to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from pocketnav import Config, NavigationTracker, PositionFix
from pocketnav.math.utils import normalize_angle, delta_angle

METERS_PER_DEG_LAT = 111320.0


def simulate_walk(duration=120, dt=1 / 30, seed=7):
    """
    Simulate a walker following a 40 m square at 1.4 m/s.

    Args:
        duration: Simulation duration in seconds
        dt: Frame time in seconds
        seed: Random seed

    Yields:
        (t, true_heading, fix, acceleration, angular_rate, compass) tuples
    """
    rng = np.random.default_rng(seed)

    # Starting position (Dublin)
    start_lat = 53.3490
    start_lon = -6.2600
    meters_per_deg_lon = METERS_PER_DEG_LAT * math.cos(math.radians(start_lat))

    speed = 1.4        # m/s
    side = 40.0        # meters
    turn_rate = 90.0   # deg/s while turning at a corner

    # Noise parameters
    gps_noise_m = 2.0
    gyro_noise = 0.002     # rad/s
    compass_noise = 3.0    # degrees
    accel_noise = 0.02     # g

    heading = 0.0
    north = east = 0.0
    walked = 0.0
    turn_left = 0.0
    t = 0.0
    last_fix_t = -1.0

    while t < duration:
        if turn_left > 0:
            step = min(turn_rate * dt, turn_left)
            turn_left -= step
            rate_dps = step / dt
            heading = normalize_angle(heading + step)
            moving = False
        else:
            rate_dps = 0.0
            north += speed * dt * math.cos(math.radians(heading))
            east += speed * dt * math.sin(math.radians(heading))
            walked += speed * dt
            moving = True
            if walked >= side:
                walked = 0.0
                turn_left = 90.0

        # Gyro reports clockwise turns as negative rates about the vertical axis
        angular_rate = -math.radians(rate_dps) + rng.normal(0, gyro_noise)

        # Upright phone: gravity on y, walking bounce on x/z
        bounce = 0.15 * math.sin(2 * math.pi * 2.0 * t) if moving else 0.0
        acceleration = (
            rng.normal(0, accel_noise),
            -1.0 + bounce + rng.normal(0, accel_noise),
            bounce * 0.5 + rng.normal(0, accel_noise)
        )

        compass = normalize_angle(heading - 3.5 + rng.normal(0, compass_noise))

        # GPS updates at 1 Hz
        fix = None
        if t - last_fix_t >= 1.0:
            last_fix_t = t
            fix = PositionFix(
                latitude=start_lat + (north + rng.normal(0, gps_noise_m)) / METERS_PER_DEG_LAT,
                longitude=start_lon + (east + rng.normal(0, gps_noise_m)) / meters_per_deg_lon,
                horizontal_accuracy=abs(rng.normal(4.0, 1.5)) + 0.5,
                timestamp=t
            )

        yield t, heading, fix, acceleration, angular_rate, compass

        t += dt


def main():
    """Main example function."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s: %(message)s")

    csv_path = sys.argv[1] if len(sys.argv) > 1 else None

    print("Handheld Navigation - Basic Usage Example")
    print("=" * 50)

    config = Config()
    tracker = NavigationTracker(config)

    samples = simulate_walk()
    _, _, first_fix, _, _, _ = next(samples)
    tracker.start(first_fix)

    writer = None
    csv_file = None
    if csv_path:
        csv_file = open(csv_path, "w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(["time_s", "fix_lat", "fix_lon", "fix_accuracy",
                         "est_lat", "est_lon", "heading", "true_heading"])

    heading_errors = []
    last_print_time = 0.0
    print_interval = 10.0

    try:
        for t, true_heading, fix, acceleration, angular_rate, compass in samples:
            result = tracker.tick(1 / 30, fix, acceleration, angular_rate, compass)

            heading_errors.append(abs(delta_angle(result.heading.degrees, true_heading)))

            if writer is not None:
                writer.writerow([
                    f"{t:.3f}",
                    f"{fix.latitude:.7f}" if fix else "",
                    f"{fix.longitude:.7f}" if fix else "",
                    f"{fix.horizontal_accuracy:.1f}" if fix else "",
                    f"{result.position.latitude:.7f}" if result.position else "",
                    f"{result.position.longitude:.7f}" if result.position else "",
                    f"{result.heading.degrees:.2f}",
                    f"{true_heading:.2f}"
                ])

            if t - last_print_time >= print_interval:
                print_status(t, result, true_heading)
                last_print_time = t
    finally:
        if csv_file is not None:
            csv_file.close()

    tracker.stop()

    stats = tracker.get_statistics()
    print("\n=== Final Statistics ===")
    print(f"Ticks: {stats['ticks']}")
    print(f"GPS Updates: {stats['position']['gps_updates']}")
    print(f"Accel Updates: {stats['position']['accel_updates']}")
    print(f"Drift Corrections: {stats['heading']['corrections_started']} "
          f"({stats['heading']['corrections_forced']} forced)")
    print(f"Mean Heading Error: {np.mean(heading_errors):.1f}°")


def print_status(t, result, true_heading):
    """Print current system status."""
    print(f"Time: {t:.1f}s")
    if result.position is not None:
        print(f"  Position: [{result.position.latitude:.6f}, {result.position.longitude:.6f}]")
    print(f"  Heading:  {result.heading.degrees:6.1f}° (true {true_heading:6.1f}°, "
          f"{result.heading.calibration_state.value})")
    print()


if __name__ == "__main__":
    main()
