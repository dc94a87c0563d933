'''
cubeworld -- procedurally generated voxel chunks, greedy meshing and runtime edits
'''
__version__ = '0.1.0'
