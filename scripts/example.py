"""
example.py - Simple Example for radioNetSim

This is a basic example script demonstrating the workflow for setting up and
running a protocol simulation. It sorts random keys with the energy-reduced
merge-sort and prints the time and energy report. For a comparison of all
protocols, see demo.py and refer to the project documentation.
"""

import numpy as np
import radionetsim as rn

#------------------------------------------------------------------------------#
#    Set Up Simulation                                                         #
#------------------------------------------------------------------------------#

sim = rn.Simulator(                            # create a simulation object
    name='Example',                            # report name
    protocol='mergeSort2',                     # regrouping merge-sort
    chanLogging='none',                        # no per-slot traffic
)

#------------------------------------------------------------------------------#
#    Keys                                                                      #
#------------------------------------------------------------------------------#

rng = np.random.default_rng(2025)              # seeded random generator
keys = rng.integers(0, 1000, 64)               # 64 stations, random keys

#------------------------------------------------------------------------------#
#    Run Simulation                                                            #
#------------------------------------------------------------------------------#

report = sim.run(keys)                         # sort, verify, and report
print(report['keys'][:8], '...')               # smallest sorted keys

#------------------------------------------------------------------------------#
#    Correction                                                                #
#------------------------------------------------------------------------------#

new = list(report['keys'])                     # sorted arrangement
new[5] = 999                                   # change two keys
new[40] = 3
sim.protocol = 'correct'                       # re-sort only changed keys
report = sim.run(report['keys'], new)
print(f"{report['changed']} keys corrected in {report['clock']} slots")
