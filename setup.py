"""
SPDX-License-Identifier: Apache-2.0
"""

import setuptools

if __name__ == "__main__":
    setuptools.setup(
        name="ambit",
        version="0.1.0",
        description="Declare named powers once and derive query, assertion, membership and identifier methods",
        license="Apache-2.0",
        python_requires=">=3.9",
        packages=setuptools.find_packages(include=["ambit", "ambit.*"]),
        install_requires=[
            "SQLAlchemy>=1.4.23",
            "inflect>=6.0",
        ],
        extras_require={
            "test": ["pytest"],
        },
    )
