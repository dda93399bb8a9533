from setuptools import setup, find_packages

setup(
    name="object-counter",
    version="0.1.0",
    description="Model-free object counting with OpenCV watershed segmentation",
    packages=find_packages(where=".", exclude=["tests", "tests.*"]),
    package_dir={"": "."},
    python_requires=">=3.8",
    install_requires=[
        "opencv-python",
        "numpy",
        "scikit-image",
        "imutils",
        "scipy",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "object-counter=object_counter.cli:main",
        ],
    },
)
