from setuptools import find_packages, setup


extras_require = {}

extras_require["messaging"] = [
    'pika>=1.3.2,<1.4'
]

extras_require["data-postgres"] = [
    'psycopg2-binary>=2.9.10,<3.0'
]

extras_require["all"] = [
    *extras_require["messaging"],
    *extras_require["data-postgres"],
]

extras_require["test"] = [
    *extras_require["all"],
    'pytest>=7.4',
    'pytest-mock>=3.11',
]


setup(
    name='orgsource',
    version='0.1.0',
    packages=find_packages(exclude=['tests', 'tests.*']),
    license='MIT',
    description='Event-sourced aggregate engine for hierarchical organizational units',
    entry_points={
        'console_scripts': [
            'orgsource = orgsource.cli:main',
        ],
    },
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
    install_requires=[
        'boto3>=1.28.55',
        'python-dotenv>=1.0.0,<2.0',
        'python-dateutil>=2.8.2',
    ],
    extras_require=extras_require,
    python_requires=">=3.10"
)
