from setuptools import setup

setup(
    name='posixacl',
    version='0.1.0',
    description='POSIX ACL model and system.posix_acl_* xattr codec',
    python_requires='>=3.10',
    packages=['posixacl', '_posixacl_scripts'],
    package_dir={
        '_posixacl_scripts': 'scripts',
    },
    package_data={
        'posixacl': ['py.typed'],
    },
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'posixacl_getfacl=_posixacl_scripts._getfacl:main',
            'posixacl_setfacl=_posixacl_scripts._setfacl:main',
        ],
    },
)
