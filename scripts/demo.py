"""
demo.py - Interactive Demo and Tutorial for radioNetSim

This script is a demonstration of the radioNetSim protocols. It runs the
ranking, merging, sorting and correction protocols on random keys and compares
their time and energy, with informational content that accompanies the
project documentation.
"""

import numpy as np
import radionetsim as rn
from textwrap import dedent

# ============================================================================
# MAIN CONTENT & DEMO SCENARIOS
# ============================================================================

def mainMenu() -> str:
    """Display main menu and get user selection"""
    print("\n" + "="*74)
    print("MAIN MENU - Select a demonstration scenario:")
    print("="*74)

    options = {
        '1': 'Sorting Protocols: Time and Energy',
        '2': 'Correction versus Sorting Again',
        '3': 'Collision Detection',
        'q': 'Exit'
    }

    for key, desc in options.items():
        print(f"  ({key}) {desc}")
    print("="*74)

    while True:
        choice = input("\nEnter your choice (1-3 or q): ").strip().lower()
        if choice in options:
            return choice
        print("Invalid choice. Please select 1-3 or q.")

##############################################################################

def demoSortEnergy() -> None:
    """Scenario 1: compare the merge-sort variants"""
    printd("""

    ╔════════════════════════════════════════════════════════════════════════╗
    ║ SCENARIO 1: SORTING PROTOCOLS                                          ║
    ╚════════════════════════════════════════════════════════════════════════╝

    Every station holds one key. In each slot one station may broadcast and
    any number may listen, and both cost one unit of energy. The three
    merge-sorts differ in how long each station must listen while ranking:

      mergeSort    plain binary search, height(m) listens per merge
      mergeSort1   search inside groups of height(m), lg lg m listens
      mergeSort2   iterated regrouping, lg* m listens
    """)

    size = askInt("Number of stations (power of two)", 256)
    if (size < 1) or (size & (size - 1)):
        print("Size must be a power of two.")
        return
    seed = askInt("Random seed", 1)
    keys = np.random.default_rng(seed).permutation(size)

    print(f"\n{'Protocol':14} {'Slots':>10} {'Max Send':>10} "
          f"{'Max Listen':>11} {'Max Total':>10}")
    print("-"*60)
    for protocol in ('mergeSort', 'mergeSort1', 'mergeSort2'):
        sim = rn.Simulator(protocol, protocol=protocol, logging='none',
                           chanLogging='none')
        r = sim.run(keys)
        print(f"{protocol:14} {r['clock']:>10} {r['maxSend']:>10} "
              f"{r['maxListen']:>11} {r['maxEnergy']:>10}")

    printd("""

    The regrouping sorts spend more slots, because every regrouping adds
    rounds of its own, and trade them for fewer listens per station as the
    network grows.
    """)

##############################################################################

def demoCorrection() -> None:
    """Scenario 2: correct a few changed keys"""
    printd("""

    ╔════════════════════════════════════════════════════════════════════════╗
    ║ SCENARIO 2: CORRECTION                                                 ║
    ╚════════════════════════════════════════════════════════════════════════╝

    A sorted arrangement is disturbed by changing k keys. Correction sorts
    only the changed keys, carried by teams of n//k virtual stations, and
    merges them back into the unchanged ones.
    """)

    size = askInt("Number of stations", 128)
    changes = askInt("Number of changed keys", 8)
    if not (0 <= changes < size):
        print("Changed keys must be fewer than the stations.")
        return
    rng = np.random.default_rng(askInt("Random seed", 1))
    old = np.sort(rng.integers(0, 10*size, size))
    new = old.copy()
    new[rng.choice(size, changes, replace=False)] = \
        rng.integers(10*size, 20*size, changes)

    fix = rn.Simulator('correct', protocol='correct', logging='none',
                       chanLogging='none').run(old, new)
    sort = rn.Simulator('mergeSort', protocol='mergeSort', logging='none',
                        chanLogging='none').run(new)

    print(f"\n{'Protocol':14} {'Slots':>10} {'Max Listen':>11} "
          f"{'Max Total':>10}")
    print("-"*48)
    for name, r in (('correct', fix), ('mergeSort', sort)):
        print(f"{name:14} {r['clock']:>10} {r['maxListen']:>11} "
              f"{r['maxEnergy']:>10}")
    print(f"\nChanged keys found: {fix['changed']}")

##############################################################################

def demoCollision() -> None:
    """Scenario 3: a faulty schedule aborts the run"""
    printd("""

    ╔════════════════════════════════════════════════════════════════════════╗
    ║ SCENARIO 3: COLLISION DETECTION                                        ║
    ╚════════════════════════════════════════════════════════════════════════╝

    Two stations broadcasting in the same slot is a protocol error. The
    channel raises a CollisionFault naming both stations, both values and
    the slot.
    """)

    net = rn.Network(3)
    net.stations[0].send(net.channel, 7)
    try:
        net.stations[2].send(net.channel, 9)
    except rn.faults.CollisionFault as e:
        print(f"CollisionFault: {e}")

# ============================================================================
# HELPERS
# ============================================================================

def printd(text: str) -> None:
    """Print dedented text"""
    print(dedent(text))

#-----------------------------------------------------------------------------

def printBanner() -> None:
    """Print welcome banner"""
    printd("""
    ╔════════════════════════════════════════════════════════════════════════╗
    ║                      radioNetSim Interactive Demo                      ║
    ║      Energy-Efficient Sorting on Single-Hop Radio Networks             ║
    ╚════════════════════════════════════════════════════════════════════════╝
    """)

#-----------------------------------------------------------------------------

def askInt(prompt: str, default: int) -> int:
    """Ask for an integer, returning the default on empty input"""
    while True:
        text = input(f"{prompt} [{default}]: ").strip()
        if not text:
            return default
        try:
            return int(text)
        except ValueError:
            print("Please enter an integer.")

# ============================================================================
# MAIN LOOP
# ============================================================================

def main() -> None:
    """Main program loop"""
    printBanner()

    while True:
        choice = mainMenu()

        if choice == 'q':
            print("\nThank you for trying the radioNetSim Interactive Demo!")
            print()
            break

        try:
            if choice == '1':
                demoSortEnergy()
            elif choice == '2':
                demoCorrection()
            elif choice == '3':
                demoCollision()

            input("\nPress Enter to return to main menu...")

        except KeyboardInterrupt:
            print("\n\nOperation cancelled by user.")
            input("Press Enter to return to main menu...")

        except rn.faults.SimulationFault as e:
            print(f"\n\nSimulation fault: {e}")
            input("Press Enter to return to main menu...")

if __name__ == "__main__":
    main()
