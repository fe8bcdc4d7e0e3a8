from setuptools import setup, find_packages

setup(
    name="uv-counter",
    version="0.1.0",
    description="Adaptive unique-visitor counter (exact set -> bitmap -> HyperLogLog)",
    packages=find_packages(include=["uvcounter", "uvcounter.*"]),
    install_requires=[
        "matplotlib",
        "pandas",
    ],
    extras_require={
        "test": ["pytest"],
    },
    include_package_data=True,
    python_requires=">=3.11",
)
