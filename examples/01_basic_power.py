"""
Basic Power Analysis Example
============================

This example estimates the power of a planned persistence x identification
study: does making posts persistent, or participants identifiable, change
how people write?
"""

from factorialpower import FactorialPower

# Example: online discussion experiment
# Groups of participants discuss a topic; each group sees one of four
# conditions (ephemeral/persistent x anonymous/identifiable).

print("=" * 60)
print("BASIC POWER ANALYSIS EXAMPLE")
print("=" * 60)

# 1. Define the design: 20 participants per group, 3 topics, 4 repetitions
model = FactorialPower(groupsize=20, topics=3, repetitions=4)

# 2. Set expected cell means (in outcome SD units)
# Order: persistent:identifiable, persistent:anonymous,
#        ephemeral:identifiable, ephemeral:anonymous
model.set_effects("-.4, -.2, -.2, 0")
model.set_sd(1.0)

print("\nStudy setup:")
print(f"Design: {model.design.sample_size} participants in {model.design.n_groups} groups")
print("Expected cell means: -.4, -.2, -.2, 0 (sd=1)")

# 3. Power for both main effects
print("\n1. BOTH MAIN EFFECTS:")
model.find_power()

# 4. The same assumptions written per cell
print("\n2. SINGLE EFFECT, NAMED CELLS:")
model.set_effects(
    "persistent:identifiable=-0.4, persistent:anonymous=-0.2, "
    "ephemeral:identifiable=-0.2, ephemeral:anonymous=0"
)
result = model.find_power(target_test="persistence", return_results=True)

# 5. Inspect individual repetitions
rows = result["results"]["rows"]
print("\nFirst repetitions:")
print(rows.head(6).to_string(index=False))

# 6. Stricter alpha
print("\n3. STRICTER ALPHA (0.01):")
model.set_alpha(0.01)
model.find_power()
