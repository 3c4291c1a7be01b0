from setuptools import find_namespace_packages, setup

# Physical structure matches import path
packages = find_namespace_packages(where="../..", include=["bundlefix.cli", "bundlefix.cli.*"])

setup(
    packages=packages,
    package_dir={"": "../.."},
)
