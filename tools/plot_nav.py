#!/usr/bin/env python3
import sys
import csv
import numpy as np
import matplotlib.pyplot as plt

METERS_PER_DEG_LAT = 111320.0


def to_local(lat, lon, ref_lat, ref_lon):
    """Equirectangular lat/lon -> (east, north) meters around a reference."""
    north = (lat - ref_lat) * METERS_PER_DEG_LAT
    east = (lon - ref_lon) * METERS_PER_DEG_LAT * np.cos(np.radians(ref_lat))
    return east, north


def read_float(value):
    return float(value) if value != "" else np.nan


# ------------------------------------------
# Read CSV file
# ------------------------------------------
if len(sys.argv) < 2:
    print("Usage: plot_nav.py <run.csv>")
    sys.exit(1)

csvfile = sys.argv[1]

# Columns (in order)
# time_s, fix_lat, fix_lon, fix_accuracy, est_lat, est_lon, heading, true_heading

t = []
fix_lat = []
fix_lon = []
est_lat = []
est_lon = []
heading = []
true_heading = []

with open(csvfile, "r") as f:
    reader = csv.reader(f)
    header = next(reader, None)   # skip header

    for row in reader:
        if len(row) < 8:
            continue

        t.append(read_float(row[0]))
        fix_lat.append(read_float(row[1]))
        fix_lon.append(read_float(row[2]))
        est_lat.append(read_float(row[4]))
        est_lon.append(read_float(row[5]))
        heading.append(read_float(row[6]))
        true_heading.append(read_float(row[7]))

t = np.array(t)
fix_lat = np.array(fix_lat)
fix_lon = np.array(fix_lon)
est_lat = np.array(est_lat)
est_lon = np.array(est_lon)

valid = ~np.isnan(est_lat)
if not valid.any():
    print("No position estimates in log! Cannot plot track.")
    sys.exit(1)

ref_lat = est_lat[valid][0]
ref_lon = est_lon[valid][0]

E_est, N_est = to_local(est_lat, est_lon, ref_lat, ref_lon)
E_fix, N_fix = to_local(fix_lat, fix_lon, ref_lat, ref_lon)

# ------------------------------------------
# Plot
# ------------------------------------------
fig, (ax_track, ax_heading) = plt.subplots(1, 2, figsize=(14, 7))

ax_track.plot(E_est, N_est, 'b-', label="Fused (EKF)", linewidth=2)
ax_track.scatter(E_fix, N_fix, s=12, c='red', label="GPS Fix", alpha=0.7)
ax_track.set_xlabel("East (m)")
ax_track.set_ylabel("North (m)")
ax_track.set_title("Track (EKF vs GPS)")
ax_track.grid(True)
ax_track.axis('equal')
ax_track.legend()

ax_heading.plot(t, true_heading, 'k--', label="True heading")
ax_heading.plot(t, heading, 'g-', label="Estimated heading")
ax_heading.set_xlabel("Time (s)")
ax_heading.set_ylabel("Heading (deg)")
ax_heading.set_ylim(0, 360)
ax_heading.set_title("Heading")
ax_heading.grid(True)
ax_heading.legend()

plt.tight_layout()
plt.show()


#Sample run command: python3 tools/plot_nav.py walk.csv
