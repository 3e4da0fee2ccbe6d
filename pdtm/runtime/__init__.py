"""Runtime - policy loading and serialized state updates"""
