"""
Group Size Calculation Example
==============================

This example shows how to find the smallest group size that gives adequate
power to detect both main effects of the 2x2 study.
"""

from factorialpower import FactorialPower

print("=" * 60)
print("GROUP SIZE CALCULATION EXAMPLE")
print("=" * 60)

# 1. Fixed part of the design: 3 topics, each run 4 times
model = FactorialPower(topics=3, repetitions=4)

# 2. Expected cell means: a small additive effect of both factors
model.set_effects("-.3, -.15, -.15, 0")

print("\nStudy setup:")
print("Topics: 3, repetitions: 4")
print("Expected cell means: -.3, -.15, -.15, 0 (sd=1)")
print("Target: 80% power for both main effects")

# 3. Basic sweep
print("\n1. BASIC SWEEP:")
model.find_groupsize(from_size=5, to_size=50, by=5)

# 4. Higher target, run on several cores
print("\n2. HIGH POWER REQUIREMENT (90% power), PARALLEL:")
model.set_power(90)
model.set_parallel(True)
result = model.find_groupsize(target_test="persistence", from_size=10, to_size=80, by=10, return_results=True)

first = result["results"]["first_achieved"]["persistence"]
if first is None:
    print("\nTarget not reached; extend the range or reconsider the design.")
else:
    print(f"\nPlan for {first} participants per group ({first * 4 * 3 * 4} in total).")
