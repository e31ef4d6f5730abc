from setuptools import setup, find_packages

setup(
    name="FactorialPower",
    version="0.1.0",
    packages=find_packages(include=["factorialpower", "factorialpower.*"]),
    python_requires=">=3.9",
    install_requires=[
        "numpy",
        "pandas",
        "scipy",
        "joblib",
    ],
    extras_require={
        "progress": ["tqdm"],
        "test": ["pytest", "statsmodels"],
    },
    description="Monte Carlo Power Analysis for Factorial Designs",
)
