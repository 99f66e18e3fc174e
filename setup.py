from setuptools import setup, find_packages

setup(
    name="obspen",
    version="0.1.0",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "torch>=1.9.0",
        "theseus-ai>=0.1.0",
        "numpy",
    ],
    extras_require={
        "test": ["pytest"],
    },
    description="Trilinearly interpolated obstacle penalty fields for trajectory optimization",
    keywords="optimization, trajectory, collision, penalty, interpolation, theseus",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Programming Language :: Python :: 3",
    ],
    python_requires=">=3.8",
)
