from setuptools import setup, find_packages

with open("README.md", "r") as f:
    long_description = f.read()

setup(
    name="ddnsync",
    version="0.3.0",
    author="The ddnsync developers",
    description="Keep DNS records in sync with the current IP addresses",
    long_description=long_description,
    long_description_content_type="text/markdown",
    license="GPL-3.0-or-later",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: GNU General Public License v3 or later "
        "(GPLv3+)",
        "Topic :: Internet :: Name Service (DNS)",
    ],

    package_dir={"": "src"},
    packages=find_packages("src"),
    install_requires=[
        "requests",
        "netifaces-plus",
        "tldextract",
        "aiosmtplib",
    ],
    python_requires=">=3.10",
    extras_require={
        "docs": ["sphinx"],
        "test": [
            "flake8",
            "pytest",
            "pytest-cov",
            "pytest-mock",
        ]
    },

    entry_points={
        "console_scripts": [
            "ddnsync=ddnsync.main:main",
        ],
    },
)
