from setuptools import setup, find_packages

setup(
    name="swiss-forecaster",
    version="0.1.0",
    description="Monte Carlo forecasts of final records in Swiss-system and single-elimination CS2 events",
    packages=find_packages(include=["swiss_forecaster", "swiss_forecaster.*"]),
    install_requires=[
        "numpy>=1.22.4",
        "pandas>=1.5.3",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.9",
    entry_points={
        "console_scripts": [
            "swiss-forecaster=swiss_forecaster.main:main",
        ],
    },
)
