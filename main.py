from pakhash.CLI import hash_list


if __name__ == "__main__":
    # Example:
    # python main.py --input ./lists/files-maps.txt --output fileinfo.txt --log
    hash_list()
