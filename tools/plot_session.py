#!/usr/bin/env python3
import sys
import csv
import numpy as np
import matplotlib.pyplot as plt

# ------------------------------------------
# Read CSV file
# ------------------------------------------
if len(sys.argv) < 2:
    print("Usage: plot_session.py <session.csv>")
    sys.exit(1)

csvfile = sys.argv[1]

# Columns (in order, as written by platforms/simulator/main.py --csv)
# time_s, proper_time_s, ax, ay, az,
# raw_speed, effective_speed, gamma,
# orientation_source, acceleration_source, rotation_only

t = []
tau = []
accel = []
v_raw = []
v_eff = []
gamma = []
rotation_only = []

with open(csvfile, "r") as f:
    reader = csv.reader(f)
    header = next(reader, None)   # skip header

    for row in reader:
        if len(row) < 11:
            continue

        try:
            t.append(float(row[0]))
            tau.append(float(row[1]))
            accel.append([float(row[2]), float(row[3]), float(row[4])])
            v_raw.append(float(row[5]))
            v_eff.append(float(row[6]))
            gamma.append(float(row[7]))
            rotation_only.append(int(row[10]))
        except ValueError:
            continue

if not t:
    print("No samples found in log!")
    sys.exit(1)

t = np.array(t)
tau = np.array(tau)
accel = np.array(accel)
v_raw = np.array(v_raw)
v_eff = np.array(v_eff)
gamma = np.array(gamma)
rotation_only = np.array(rotation_only, dtype=bool)

# ------------------------------------------
# Plot
# ------------------------------------------
fig, axes = plt.subplots(4, 1, figsize=(10, 10), sharex=True)

axes[0].plot(t, accel[:, 0], label="ax")
axes[0].plot(t, accel[:, 1], label="ay")
axes[0].plot(t, accel[:, 2], label="az")
axes[0].set_ylabel("Accel world (m/s²)")
axes[0].legend(loc="upper right")

axes[1].plot(t, v_raw, 'b-', label="raw")
axes[1].plot(t, v_eff, 'g--', label="effective")
if rotation_only.any():
    axes[1].scatter(t[rotation_only], v_raw[rotation_only], s=6, c='red',
                    label="rotation only", alpha=0.6)
axes[1].set_ylabel("Speed (m/s)")
axes[1].legend(loc="upper right")

axes[2].plot(t, gamma, 'm-')
axes[2].set_ylabel("Gamma")

axes[3].plot(t, t - t[0], 'k:', label="wall clock")
axes[3].plot(t, tau, 'b-', label="proper time")
axes[3].set_ylabel("Time (s)")
axes[3].set_xlabel("Wall time (s)")
axes[3].legend(loc="upper left")

for ax in axes:
    ax.grid(True)

fig.suptitle("Twin Timer Session")
plt.tight_layout()
plt.show()


#Sample run command: python3 plot_session.py session.csv
