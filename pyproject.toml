[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "obstacle_predict"
version = "0.1.0"
description = "Obstacle clustering, tracking and Kalman-filter motion prediction for point clouds and box markers"
requires-python = ">=3.10"
keywords = ["kalman filter", "obstacle tracking", "point cloud", "clustering", "robotics", "prediction"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering",
]
dependencies = [
    "numpy",
    "scipy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["obstacle_predict"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
