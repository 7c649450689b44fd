"""Install the API users package."""

from setuptools import setup, find_packages

setup(
    name='api-users',
    version='0.1.0',
    packages=find_packages(exclude=['*tests*']),
    python_requires='>=3.8',
    install_requires=[
        "click",
        "flask",
        "flask-sqlalchemy",
        "sqlalchemy",
        "werkzeug",
        "wtforms",
        "email-validator",
        "passlib",
        "bcrypt<4.1",
        "pytz",
    ],
    extras_require={
        'test': [
            "pytest",
            "hypothesis",
            "mimesis",
        ]
    },
    entry_points={
        'console_scripts': ['apiusers=apiusers.cli:cli'],
    },
    zip_safe=False
)
