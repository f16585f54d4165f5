from setuptools import setup, find_packages
import os
from glob import glob

package_name = 'meta_planner'

setup(
    name=package_name,
    version='1.0.0',
    packages=find_packages(exclude=['test']),
    data_files=[
        ('share/ament_index/resource_index/packages',
            ['resource/' + package_name]),
        ('share/' + package_name, ['package.xml']),
        # Include launch files
        (os.path.join('share', package_name, 'launch'), glob('launch/*.py')),
        # Include config files
        (os.path.join('share', package_name, 'config'), glob('config/*.yaml')),
    ],
    install_requires=[
        'setuptools',
        'numpy>=1.24.0',
        'scipy>=1.10.0',
        'matplotlib>=3.7.0',
        'pyyaml>=6.0',
    ],
    extras_require={
        'test': ['pytest'],
    },
    zip_safe=True,
    maintainer='Developer',
    maintainer_email='user@example.com',
    description='Meta-planning and safe tracking for a near-hover quadrotor',
    license='MIT',
    tests_require=['pytest'],
    entry_points={
        'console_scripts': [
            'tracker_node = meta_planner.nodes.tracker_node:main',
            'sensor_node = meta_planner.nodes.sensor_node:main',
            'simulator_node = meta_planner.nodes.simulator_node:main',
        ],
    },
)
