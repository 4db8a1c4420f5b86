from setuptools import find_packages, setup

setup(
    name='xapilink',
    version='1.0.0',
    description='Asyncio protocol engine for device XAPI over shell and WebSocket transports',
    author='isantolin',
    author_email='',
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.10',
    install_requires=[
        'msgspec',
        'transitions',
        'websockets',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-asyncio',
        ],
    },
    classifiers=[
        'Programming Language :: Python :: 3',
        'Framework :: AsyncIO',
        'Operating System :: OS Independent',
    ],
)
