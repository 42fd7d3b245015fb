from setuptools import find_packages, setup

setup(
    name='buildjobs',
    version='1.0.0',
    description='Build job lifecycle, queue routing and commit status reporting',
    packages=find_packages(exclude=[
        'buildjobs.test',
        'buildjobs.test.*',
    ]),
    install_requires=[
        'cryptography',
        'python-dateutil',
        'requests',
        'simplejson',
    ],
    extras_require={
        'test': [
            'pytest',
        ],
    },
    entry_points={
        "console_scripts": [
            "buildjobs = buildjobs.main:main",
        ],
    }
)
