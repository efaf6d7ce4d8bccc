from setuptools import find_namespace_packages, setup

setup(
    name='pangea',
    version='0.1',
    py_modules=['pangea'],
    packages=find_namespace_packages(include=['modules*', 'resource_classes*']),
    install_requires=[
        'Click',
        'python-hcl2',
        'PyYAML',
        'pydantic>=2',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points='''
        [console_scripts]
        pangea=pangea:cli
    ''',
)
