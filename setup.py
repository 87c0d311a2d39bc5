from setuptools import setup, find_packages

setup(
    name='hostedctl',
    version='0.1.0',
    packages=find_packages(exclude=['hostedctl.tests']),
    include_package_data=True,
    install_requires=[
        'typer[all]',
        'kubernetes',
        'boto3',
        'botocore',
        'requests',
        'python-dotenv',
        'PyYAML',
        'jsonschema',
        'pydantic>=2',
        'bcrypt',
    ],
    extras_require={
        'test': [
            'pytest',
        ]
    },
    entry_points={
        'console_scripts': [
            'hostedctl=hostedctl.cli:app'
        ]
    },
    author='Your Name',
    description='Provisions and tears down the AWS infrastructure backing hosted control planes on a management cluster',
    classifiers=[
        'Programming Language :: Python :: 3',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.9',
)
